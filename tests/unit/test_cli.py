"""Unit tests for the command line entry point."""

import json

import pytest

from launcher_search.adapters.catalog_source import dump_snapshot
from launcher_search.cli import EXIT_BAD_SNAPSHOT, EXIT_OK, build_argument_parser, main


@pytest.fixture
def catalog_path(tmp_path, sample_snapshot):
    path = tmp_path / "catalog.json"
    dump_snapshot(sample_snapshot, path)
    return path


def run_cli(capsys, *argv):
    code = main([str(arg) for arg in argv])
    return code, capsys.readouterr()


@pytest.mark.unit
@pytest.mark.usefixtures("restore_root_logger")
class TestCli:
    def test_prints_ranked_results(self, capsys, catalog_path):
        code, captured = run_cli(capsys, "--catalog", catalog_path, "clip")
        payload = json.loads(captured.out)

        assert code == EXIT_OK
        assert payload["query"] == "clip"
        assert payload["results"][0]["item_id"] == "clipboard-history"
        assert payload["kind_counts"] == {"extension": 1}
        assert payload["category_counts"] == {"productivity": 1}
        name_match = payload["results"][0]["matched_ranges_per_field"][0]
        assert name_match == {"field": "name", "text": "Clipboard History", "score": 27.0, "ranges": [[0, 4]]}

    def test_kind_filter(self, capsys, catalog_path):
        code, captured = run_cli(capsys, "--catalog", catalog_path, "--kind", "command", "")

        assert code == EXIT_OK
        assert [result["item_id"] for result in json.loads(captured.out)["results"]] == ["toggle-dark-mode"]

    def test_flags_and_limit(self, capsys, catalog_path):
        code, captured = run_cli(
            capsys, "--catalog", catalog_path, "--enabled-only", "--limit", "2", "--plain-logs", ""
        )
        results = json.loads(captured.out)["results"]

        assert code == EXIT_OK
        assert len(results) == 2
        assert "github" not in [result["item_id"] for result in results]

    def test_category_and_favorites(self, capsys, catalog_path):
        code, captured = run_cli(capsys, "--catalog", catalog_path, "--category", "system", "--favorites", "")

        assert [result["item_id"] for result in json.loads(captured.out)["results"]] == ["toggle-dark-mode"]

    def test_invalid_snapshot(self, capsys, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"schema_version": 99, "items": []}')
        code, captured = run_cli(capsys, "--catalog", path, "clip")

        assert code == EXIT_BAD_SNAPSHOT
        assert captured.out == ""
        assert "Unsupported snapshot schema version" in captured.err

    def test_missing_snapshot(self, capsys, tmp_path):
        code, _ = run_cli(capsys, "--catalog", tmp_path / "missing.json", "clip")

        assert code == EXIT_BAD_SNAPSHOT

    def test_rejects_non_positive_limit(self, catalog_path):
        with pytest.raises(SystemExit):
            main(["--catalog", str(catalog_path), "--limit", "0", "clip"])

    def test_parser_requires_catalog(self):
        with pytest.raises(SystemExit):
            build_argument_parser().parse_args(["clip"])
