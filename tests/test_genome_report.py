from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path

from click.testing import CliRunner
import pytest

from sweepevo.evolution import ArchiveCheckpoint, EliteArchive, EliteEntry, save_checkpoint


@pytest.fixture(scope="module")
def report_cli():
    path = Path(__file__).resolve().parents[1] / "tools" / "genome_report.py"
    spec = spec_from_file_location("genome_report", path)
    module = module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.main


def write_checkpoint(path, genomes):
    archive = EliteArchive(len(genomes))
    archive.merge(
        EliteEntry(genome=g, score=float(10 - i), born_at_generation=0)
        for i, g in enumerate(genomes)
    )
    return save_checkpoint(ArchiveCheckpoint.capture(archive, 5), path)


def test_reports_champion(report_cli, make_genome, tmp_path):
    path = write_checkpoint(tmp_path / "c.json", [make_genome(), make_genome()])

    result = CliRunner().invoke(report_cli, [str(path)])

    assert result.exit_code == 0, result.output
    assert "Generation: 5" in result.output
    assert result.output.count("Weights: 92") == 1
    assert "Verdict: ok" in result.output


def test_flags_stagnant_weights(report_cli, make_genome, tmp_path):
    path = write_checkpoint(tmp_path / "c.json", [make_genome(), make_genome(fill=0.0)])

    result = CliRunner().invoke(report_cli, [str(path), "--all"])

    assert result.exit_code == 2
    assert result.output.count("Weights: 92") == 2
    assert "STAGNANT" in result.output


def test_unreadable_checkpoint(report_cli, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{}")

    result = CliRunner().invoke(report_cli, [str(path)])

    assert result.exit_code == 1
