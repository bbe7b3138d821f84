import numpy as np
import pytest

from sweepevo.evolution import EliteArchive, EliteEntry


def entries(make_genome, scores, born=1):
    return [EliteEntry(genome=make_genome(), score=s, born_at_generation=born) for s in scores]


class TestMerge:
    def test_top_k_replaces_weaker_entries(self, make_genome, make_archive):
        archive = make_archive(2, [10.0, 5.0])

        outcome = archive.merge(entries(make_genome, [20.0, 1.0, 1.0, 1.0, 1.0, 1.0]))

        assert archive.scores() == [20.0, 10.0]
        assert outcome.added == 1
        assert outcome.evicted == 1

    def test_size_never_exceeds_capacity(self, make_genome, rng):
        for capacity in (1, 2, 5):
            archive = EliteArchive(capacity)
            for _ in range(5):
                count = int(rng.integers(0, 12))
                archive.merge(entries(make_genome, rng.normal(size=count).tolist()))
                assert len(archive) <= capacity
                assert archive.scores() == sorted(archive.scores(), reverse=True)

    def test_ties_favour_older_entries(self, make_genome):
        archive = EliteArchive(1)
        old = EliteEntry(genome=make_genome(), score=7.0, born_at_generation=0)
        archive.merge([old])

        archive.merge([EliteEntry(genome=make_genome(), score=7.0, born_at_generation=3)])

        assert archive.top() is old

    def test_rescored_replay_keeps_earlier_record(self, make_genome, make_archive):
        archive = make_archive(2, [10.0, 5.0])
        replayed = archive.top()

        outcome = archive.merge(
            [EliteEntry(genome=replayed.genome, score=20.0, born_at_generation=0)]
        )

        assert archive.scores() == [20.0, 10.0]
        assert archive.entries[1] is replayed
        assert outcome.added == 1
        assert outcome.evicted == 1

    def test_top_score_never_decreases(self, make_genome, rng):
        archive = EliteArchive(4)
        best = -np.inf
        for generation in range(10):
            archive.merge(entries(make_genome, rng.normal(0, 10, size=6).tolist(), generation))
            assert archive.top_score >= best
            best = archive.top_score

    def test_empty_merge_keeps_archive(self, make_archive):
        archive = make_archive(3, [3.0, 2.0])

        archive.merge([])

        assert archive.scores() == [3.0, 2.0]


class TestQueries:
    def test_admission_score_only_when_full(self, make_archive):
        assert make_archive(3, [3.0, 2.0]).admission_score() is None
        assert make_archive(2, [3.0, 2.0]).admission_score() == 2.0

    def test_better_half(self, make_archive):
        archive = make_archive(5, [5.0, 4.0, 3.0, 2.0, 1.0])

        assert [e.score for e in archive.better_half()] == [5.0, 4.0, 3.0]
        assert len(make_archive(5, [1.0]).better_half()) == 1

    def test_empty_archive(self):
        archive = EliteArchive(2)

        assert archive.top() is None
        assert archive.top_score is None
        assert not archive.is_full

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            EliteArchive(0)
