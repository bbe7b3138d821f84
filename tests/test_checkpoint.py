import pytest

from sweepevo.evolution import ArchiveCheckpoint, load_checkpoint, save_checkpoint
from sweepevo.exceptions import CheckpointError


def test_archive_survives_checkpoint(make_archive, tmp_path):
    archive = make_archive(3, [7.5, 2.0, -1.0], born=4)
    path = save_checkpoint(ArchiveCheckpoint.capture(archive, 12), tmp_path / "a.json")

    restored = load_checkpoint(path)

    assert restored.generation == 12
    assert restored.capacity == 3
    rebuilt = restored.restore()
    assert [e.genome for e in rebuilt] == [e.genome for e in archive]
    assert rebuilt.scores() == [7.5, 2.0, -1.0]
    assert all(e.born_at_generation == 4 for e in rebuilt)


def test_restore_into_smaller_archive(make_archive):
    checkpoint = ArchiveCheckpoint.capture(make_archive(3, [3.0, 2.0, 1.0]), 1)

    assert checkpoint.restore(capacity=2).scores() == [3.0, 2.0]


def test_no_temp_files_left_behind(make_archive, tmp_path):
    save_checkpoint(ArchiveCheckpoint.capture(make_archive(2, [1.0]), 1), tmp_path / "c.json")
    save_checkpoint(ArchiveCheckpoint.capture(make_archive(2, [2.0]), 2), tmp_path / "c.json")

    assert [p.name for p in tmp_path.iterdir()] == ["c.json"]
    assert load_checkpoint(tmp_path / "c.json").generation == 2


def test_failed_replace_removes_temp_file(make_archive, tmp_path):
    target = tmp_path / "c.json"
    target.mkdir()
    (target / "occupied").write_text("")

    with pytest.raises(CheckpointError):
        save_checkpoint(ArchiveCheckpoint.capture(make_archive(2, [1.0]), 1), target)

    assert [p.name for p in tmp_path.iterdir()] == ["c.json"]


def test_missing_file(tmp_path):
    with pytest.raises(CheckpointError):
        load_checkpoint(tmp_path / "nope.json")


@pytest.mark.parametrize(
    "content",
    ["not json", '{"generation": 1}', '{"generation": 1, "capacity": 2, "entries": [{"score": 1}]}'],
)
def test_malformed_file(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)

    with pytest.raises(CheckpointError):
        load_checkpoint(path)
