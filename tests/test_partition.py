import pytest

from sweepevo.workers import partition_population, resolve_worker_count


class TestPartition:
    def test_ceil_division_last_short(self):
        batches = partition_population(list(range(10)), 3)

        assert [len(b) for b in batches] == [4, 4, 2]
        assert [x for b in batches for x in b] == list(range(10))

    def test_fewer_items_than_workers(self):
        assert partition_population(["a", "b"], 4) == [["a"], ["b"]]

    def test_exact_split(self):
        assert [len(b) for b in partition_population(list(range(9)), 3)] == [3, 3, 3]

    def test_single_worker_gets_everything(self):
        assert partition_population(list(range(5)), 1) == [list(range(5))]

    def test_empty_population(self):
        assert partition_population([], 3) == []

    def test_worker_count_must_be_positive(self):
        with pytest.raises(ValueError):
            partition_population([1, 2], 0)


class TestWorkerCount:
    @pytest.mark.parametrize(
        "requested,cpus,cap,expected",
        [
            (None, 8, 16, 8),
            (None, 32, 16, 16),
            (4, 8, 16, 4),
            (12, 8, 16, 8),
            (4, 8, 2, 2),
            (None, None, 16, 1),
        ],
    )
    def test_bounds(self, monkeypatch, requested, cpus, cap, expected):
        monkeypatch.setattr("sweepevo.workers.pool.os.cpu_count", lambda: cpus)

        assert resolve_worker_count(requested, cap) == expected
