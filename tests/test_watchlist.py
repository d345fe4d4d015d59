"""
Watchlist user flow tests.

Save, check and remove movies, series and episodes; survive broken
storage; persist across store instances.
"""

import json
import threading

import pytest

from conftest import FIXED_NOW, episode_payload, movie_payload, tv_payload
from tmdb_browser.exceptions import StorageError
from tmdb_browser.models import Movie, TvEpisode, TvSeries
from tmdb_browser.storage import FileStorage, KeyValueStorage, MemoryStorage
from tmdb_browser.watchlist import STORAGE_KEY, WatchlistDocument, WatchlistStore


def stored_json(storage) -> dict:
    return json.loads(storage.get(STORAGE_KEY).decode("utf-8"))


class BrokenStorage:
    """Storage whose reads and writes always fail."""

    def get(self, key):
        raise StorageError("disk unavailable")

    def set(self, key, value):
        raise StorageError("disk unavailable")


class RefusingStorage(MemoryStorage):
    """Storage that reads fine but refuses writes."""

    def set(self, key, value):
        return False


class BarrierStorage(MemoryStorage):
    """Makes two concurrent readers both see the document before either writes."""

    def __init__(self):
        super().__init__()
        self.barrier = threading.Barrier(2, timeout=5)
        self.armed = True

    def get(self, key):
        value = super().get(key)
        if self.armed:
            self.barrier.wait()
        return value


class TestMovieWatchlistFlow:
    """Flow 1: movie detail screen - save → check → remove"""

    def test_empty_watchlist(self, store):
        document = store.get_all()

        assert document.is_empty()
        assert not store.is_movie_in_watchlist(550)

    def test_add_movie(self, store, memory_storage):
        movie = Movie.from_tmdb(movie_payload(550, "Fight Club"))

        assert store.add_movie(movie)
        assert store.is_movie_in_watchlist(550)

        saved = stored_json(memory_storage)["movies"][0]
        assert saved == {
            "id": 550,
            "title": "Fight Club",
            "posterPath": "/poster_550.jpg",
            "releaseDate": "1999-10-15",
            "voteAverage": 8.4,
            "addedAt": "2024-05-01T12:30:00.000Z",
        }

    def test_add_same_movie_twice_keeps_one_entry(self, store):
        movie = Movie.from_tmdb(movie_payload(550))

        assert store.add_movie(movie)
        assert store.add_movie(movie)

        assert len(store.get_all().movies) == 1

    def test_remove_movie(self, store):
        store.add_movie(Movie.from_tmdb(movie_payload(550)))
        store.add_movie(Movie.from_tmdb(movie_payload(13)))

        assert store.remove_movie(550)

        assert not store.is_movie_in_watchlist(550)
        assert store.is_movie_in_watchlist(13)

    def test_remove_absent_movie_is_success(self, store):
        assert store.remove_movie(999)
        assert store.get_all().is_empty()

    def test_add_then_remove_restores_empty_list(self, store):
        before = store.get_all().movies

        store.add_movie(Movie.from_tmdb(movie_payload(550)))
        assert len(store.get_all().movies) == 1
        store.remove_movie(550)

        assert store.get_all().movies == before == []

    def test_entries_keep_insertion_order(self, store):
        for movie_id in (3, 1, 2):
            store.add_movie(Movie.from_tmdb(movie_payload(movie_id)))

        assert [m.id for m in store.get_all().movies] == [3, 1, 2]


class TestSeriesWatchlistFlow:
    """Flow 2: series detail screen - save → check → remove"""

    def test_add_and_remove_series(self, store, memory_storage):
        series = TvSeries.from_tmdb(tv_payload(1396, "Breaking Bad"))

        assert store.add_tv_series(series)
        assert store.is_tv_series_in_watchlist(1396)
        assert stored_json(memory_storage)["tvSeries"][0]["firstAirDate"] == "2008-01-20"

        assert store.remove_tv_series(1396)
        assert not store.is_tv_series_in_watchlist(1396)

    def test_movie_and_series_with_same_id_are_separate(self, store):
        store.add_movie(Movie.from_tmdb(movie_payload(100)))
        store.add_tv_series(TvSeries.from_tmdb(tv_payload(100)))

        store.remove_movie(100)

        assert store.is_tv_series_in_watchlist(100)
        assert store.get_all().counts() == {"movies": 0, "tvSeries": 1, "episodes": 0}


class TestEpisodeWatchlistFlow:
    """Flow 3: episode detail screen - save → check → remove"""

    def test_add_episode_stores_parent_names(self, store, memory_storage):
        episode = TvEpisode.from_tmdb(episode_payload(62085, season=1, episode=1))

        assert store.add_episode(episode, 1396, "Breaking Bad", "Season 1")

        saved = stored_json(memory_storage)["episodes"][0]
        assert saved["tvId"] == 1396
        assert saved["seriesName"] == "Breaking Bad"
        assert saved["seasonName"] == "Season 1"
        assert saved["seasonNumber"] == 1
        assert saved["episodeNumber"] == 1
        assert store.is_episode_in_watchlist(1396, 1, 1)

    def test_episode_identity_ignores_remote_id(self, store):
        """Two payloads for the same series/season/episode are one entry."""
        first = TvEpisode.from_tmdb(episode_payload(111, season=2, episode=3))
        second = TvEpisode.from_tmdb(episode_payload(222, season=2, episode=3))

        store.add_episode(first, 1396, "Breaking Bad", "Season 2")
        store.add_episode(second, 1396, "Breaking Bad", "Season 2")

        assert len(store.get_all().episodes) == 1
        assert store.get_all().episodes[0].id == 111

    def test_same_episode_number_in_other_series(self, store):
        episode = TvEpisode.from_tmdb(episode_payload(1, season=1, episode=1))

        store.add_episode(episode, 1396, "Breaking Bad", "Season 1")
        store.add_episode(episode, 60059, "Better Call Saul", "Season 1")

        assert store.is_episode_in_watchlist(60059, 1, 1)
        assert len(store.get_all().episodes) == 2

    def test_remove_episode(self, store):
        store.add_episode(TvEpisode.from_tmdb(episode_payload(1, 1, 1)), 1396, "BB", "Season 1")
        store.add_episode(TvEpisode.from_tmdb(episode_payload(2, 1, 2)), 1396, "BB", "Season 1")

        assert store.remove_episode(1396, 1, 1)

        assert not store.is_episode_in_watchlist(1396, 1, 1)
        assert store.is_episode_in_watchlist(1396, 1, 2)

    def test_remove_episode_from_empty_watchlist_does_not_write(self, store, memory_storage):
        assert store.remove_episode(1396, 1, 1)
        assert memory_storage.get(STORAGE_KEY) is None


class TestStoredDocumentCompatibility:
    """Documents already on disk, written by older versions or corrupted."""

    def test_document_without_episodes_key(self, memory_storage, store):
        legacy = {"movies": [{"id": 1, "title": "Old"}], "tvSeries": []}
        memory_storage.set(STORAGE_KEY, json.dumps(legacy).encode("utf-8"))

        document = store.get_all()

        assert [m.id for m in document.movies] == [1]
        assert document.episodes == []

        episode = TvEpisode.from_tmdb(episode_payload(5))
        assert store.add_episode(episode, 10, "Series", "Season 1")
        assert "episodes" in stored_json(memory_storage)
        assert store.is_movie_in_watchlist(1)

    def test_corrupt_document_reads_as_empty(self, memory_storage, store):
        memory_storage.set(STORAGE_KEY, b"{not json")

        assert store.get_all().is_empty()

    def test_corrupt_document_is_replaced_on_next_add(self, memory_storage, store):
        memory_storage.set(STORAGE_KEY, b"[1, 2, 3]")

        assert store.add_movie(Movie.from_tmdb(movie_payload(7)))

        assert [m["id"] for m in stored_json(memory_storage)["movies"]] == [7]

    def test_malformed_entry_does_not_wipe_the_rest(self, memory_storage, store):
        """One unreadable entry is dropped; every other saved item survives the next add."""
        stored = {
            "movies": [{"id": 1, "title": "Kept"}, {"title": "no id"}],
            "tvSeries": [{"id": 9, "name": "Series", "firstAirDate": "2008-01-20"}],
            "episodes": [
                {"tvId": 9, "seasonNumber": 1, "episodeNumber": 1, "name": "Pilot"},
                {"tvId": 9, "name": "missing numbers"},
            ],
        }
        memory_storage.set(STORAGE_KEY, json.dumps(stored).encode("utf-8"))

        assert store.add_movie(Movie.from_tmdb(movie_payload(2)))

        saved = stored_json(memory_storage)
        assert [m["id"] for m in saved["movies"]] == [1, 2]
        assert [t["id"] for t in saved["tvSeries"]] == [9]
        assert [(e["tvId"], e["seasonNumber"], e["episodeNumber"]) for e in saved["episodes"]] == [(9, 1, 1)]

    def test_non_object_entries_and_sections_are_skipped(self, memory_storage, store):
        stored = {"movies": ["oops", 5, {"id": 3, "title": "Fine"}], "tvSeries": {"id": 9}}
        memory_storage.set(STORAGE_KEY, json.dumps(stored).encode("utf-8"))

        document = store.get_all()

        assert [m.id for m in document.movies] == [3]
        assert document.tv_series == []

    def test_entry_with_bad_rating_is_skipped(self, memory_storage, store):
        stored = {"movies": [{"id": 1, "title": "A", "voteAverage": "high"}, {"id": 2, "title": "B", "voteAverage": 7.25}]}
        memory_storage.set(STORAGE_KEY, json.dumps(stored).encode("utf-8"))

        movies = store.get_all().movies

        assert [m.id for m in movies] == [2]
        assert movies[0].rating() == 7.3

    def test_undecodable_bytes_read_as_empty(self, memory_storage, store):
        memory_storage.set(STORAGE_KEY, b"\xff\xfe\x00")

        assert store.get_all().is_empty()

    def test_document_round_trip_through_bytes(self):
        document = WatchlistDocument.from_dict(
            {"movies": [{"id": 1, "title": "Amélie", "addedAt": "2024-01-01T00:00:00.000Z"}]}
        )
        assert WatchlistDocument.from_bytes(document.to_bytes()) == document


class TestStorageFailures:
    """Storage faults are reported as False, never raised."""

    def test_reads_fail(self):
        store = WatchlistStore(BrokenStorage())

        assert store.get_all().is_empty()
        assert not store.is_movie_in_watchlist(1)
        assert not store.add_movie(Movie.from_tmdb(movie_payload(1)))
        assert not store.remove_tv_series(1)
        assert not store.remove_episode(1, 1, 1)

    def test_write_refused(self):
        storage = RefusingStorage()
        store = WatchlistStore(storage)

        assert not store.add_tv_series(TvSeries.from_tmdb(tv_payload(1)))
        assert not store.remove_movie(1)
        assert storage.get(STORAGE_KEY) is None

    def test_read_fault_does_not_overwrite(self, memory_storage):
        """A mutation that could not read the document must not replace it."""
        memory_storage.set(STORAGE_KEY, WatchlistDocument.from_dict({"movies": [{"id": 1, "title": "A"}]}).to_bytes())
        original = memory_storage.get(STORAGE_KEY)

        class FlakyReads(MemoryStorage):
            def get(self, key):
                raise StorageError("read failed")

        flaky = FlakyReads(initial={STORAGE_KEY: original})
        store = WatchlistStore(flaky)

        assert not store.add_movie(Movie.from_tmdb(movie_payload(2)))
        assert flaky._data[STORAGE_KEY] == original


class TestConcurrentMutations:
    """Overlapping mutations are not serialized; the later write wins."""

    def test_two_concurrent_adds_lose_one_entry(self):
        storage = BarrierStorage()
        store = WatchlistStore(storage, clock=lambda: FIXED_NOW)
        results = []

        def add(movie_id):
            results.append(store.add_movie(Movie.from_tmdb(movie_payload(movie_id))))

        threads = [threading.Thread(target=add, args=(i,)) for i in (1, 2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        storage.armed = False

        assert results == [True, True]
        saved_ids = [m["id"] for m in stored_json(storage)["movies"]]
        assert len(saved_ids) == 1
        assert saved_ids[0] in (1, 2)


class TestFileStorage:
    """Watchlist persisted on disk between runs."""

    def test_persists_across_store_instances(self, tmp_path):
        first = WatchlistStore(FileStorage(tmp_path), clock=lambda: FIXED_NOW)
        first.add_movie(Movie.from_tmdb(movie_payload(550)))

        second = WatchlistStore(FileStorage(tmp_path))

        assert second.is_movie_in_watchlist(550)
        assert (tmp_path / f"{STORAGE_KEY}.json").exists()

    def test_missing_file_reads_none(self, tmp_path):
        assert FileStorage(tmp_path / "nested").get(STORAGE_KEY) is None

    def test_set_creates_directory(self, tmp_path):
        storage = FileStorage(tmp_path / "a" / "b")

        assert storage.set("key", b"{}")
        assert storage.get("key") == b"{}"

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = FileStorage(tmp_path)
        storage.set("key", b"one")
        storage.set("key", b"two")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["key.json"]

    def test_unsafe_key_rejected(self, tmp_path):
        with pytest.raises(StorageError):
            FileStorage(tmp_path).get("../escape")

    def test_delete(self, tmp_path):
        storage = FileStorage(tmp_path)
        storage.set("key", b"x")

        assert storage.delete("key")
        assert not storage.delete("key")


class TestStorageInterface:

    def test_backend_must_implement_delete(self):
        class NoDelete(KeyValueStorage):
            def get(self, key):
                return None

            def set(self, key, value):
                return True

        with pytest.raises(TypeError):
            NoDelete()

    def test_backends_are_complete(self, tmp_path):
        assert isinstance(MemoryStorage(), KeyValueStorage)
        assert isinstance(FileStorage(tmp_path), KeyValueStorage)


class TestMemoryStorage:

    def test_rejects_non_bytes(self):
        with pytest.raises(StorageError):
            MemoryStorage().set("key", "text")

    def test_delete(self):
        storage = MemoryStorage({"key": b"x"})

        assert storage.delete("key")
        assert storage.get("key") is None
