"""End-to-end tests for the cargo-dep command line."""

import json
import logging

import pytest

from cargodep.__main__ import error_lines, main, setup_logging
from cargodep.errors import MetadataError

EXPECTED_DEFAULT_DOT = (
    'digraph dependencies {\n'
    '  subgraph cluster0 {\n'
    '  label = "Workspace Members";\n'
    '    N0 [label="a 1.0.0"];\n'
    '    N1 [label="b 1.0.0"];\n'
    '  }\n'
    '  N2 [label="c 1.0.0"];\n'
    '  N1 -> N2;\n'
    '}\n'
)


@pytest.fixture
def metadata_file(tmp_path, simple_document):
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps(simple_document))
    return str(path)


class TestMain:

    def test_default_graph(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file]) == 0

        out, err = capsys.readouterr()
        assert out == EXPECTED_DEFAULT_DOT
        assert "Error" not in err

    def test_cargo_subcommand_name_is_dropped(self, metadata_file, capsys):
        assert main(["dep", "--metadata-file", metadata_file]) == 0

        assert capsys.readouterr().out == EXPECTED_DEFAULT_DOT

    def test_exclude_dependency(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "--exclude", "c"]) == 0

        out = capsys.readouterr().out
        assert "c 1.0.0" not in out
        assert "->" not in out

    def test_exclude_root(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "--exclude", "b"]) == 0

        out = capsys.readouterr().out
        assert 'N0 [label="a 1.0.0"]' in out
        assert "b 1.0.0" not in out
        assert "c 1.0.0" not in out

    def test_explicit_package_roots(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "-p", "b", "--format", "list"]) == 0

        assert capsys.readouterr().out == "b 1.0.0\nc 1.0.0\n"

    def test_repeated_package_option(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "-p", "a", "--package", "c", "--format", "list"]) == 0

        assert capsys.readouterr().out == "a 1.0.0\nc 1.0.0\n"

    def test_unknown_package_root_is_not_an_error(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "-p", "nonexistent-name"]) == 0

        out = capsys.readouterr().out
        assert "label=" not in out.replace('label = "Workspace Members"', "")

    def test_unknown_exclude_fails(self, metadata_file, capsys):
        assert main(["--metadata-file", metadata_file, "--exclude", "nonexistent-name"]) == 1

        out, err = capsys.readouterr()
        assert out == ""
        assert "Error: Could not find exclude spec `nonexistent-name`." in err

    def test_metadata_failure_prints_cause_chain(self, tmp_path, capsys):
        assert main(["--metadata-file", str(tmp_path / "missing.json")]) == 1

        out, err = capsys.readouterr()
        lines = err.strip().splitlines()
        assert out == ""
        assert lines[0] == "Error: Failed to load cargo metadata."
        assert lines[1].startswith("Caused by: ")
        assert "missing.json" in lines[1]

    def test_duplicate_id_fails_without_output(self, tmp_path, simple_document, capsys):
        simple_document["packages"].append(dict(simple_document["packages"][0]))
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps(simple_document))

        assert main(["--metadata-file", str(path)]) == 1

        out, err = capsys.readouterr()
        assert out == ""
        assert "Duplicate key `a 1.0.0 path`" in err

    def test_output_file(self, metadata_file, tmp_path, capsys):
        output = tmp_path / "deps.dot"

        assert main(["--metadata-file", metadata_file, "-o", str(output)]) == 0

        assert output.read_text() == EXPECTED_DEFAULT_DOT
        assert capsys.readouterr().out == ""

    def test_unwritable_output_file(self, metadata_file, tmp_path, capsys):
        output = tmp_path / "missing" / "deps.dot"

        assert main(["--metadata-file", metadata_file, "-o", str(output)]) == 1

        out, err = capsys.readouterr()
        assert out == ""
        assert "Error writing output" in err
        assert not output.exists()

    def test_unexpected_error_exits_nonzero(self, metadata_file, monkeypatch, capsys):
        def fail(args, command_line=None):
            raise RuntimeError("boom")

        monkeypatch.setattr("cargodep.__main__.generate_graph", fail)

        assert main(["--metadata-file", metadata_file]) == 1

        out, err = capsys.readouterr()
        assert out == ""
        assert "Error: boom" in err

    def test_malformed_metadata_prints_cause_chain(self, tmp_path, simple_document, capsys):
        simple_document["resolve"] = []
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps(simple_document))

        assert main(["--metadata-file", str(path)]) == 1

        out, err = capsys.readouterr()
        lines = err.strip().splitlines()
        assert out == ""
        assert lines[0] == "Error: Failed to load cargo metadata."
        assert lines[1].startswith("Caused by: ")
        assert "`resolve` section" in lines[1]

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])

        assert excinfo.value.code == 0
        assert "cargo-dep 0.1.0" in capsys.readouterr().out

    def test_manifest_path_and_metadata_file_are_exclusive(self, metadata_file):
        with pytest.raises(SystemExit) as excinfo:
            main(["--metadata-file", metadata_file, "--manifest-path", "Cargo.toml"])

        assert excinfo.value.code == 2


class TestErrorLines:

    def test_cause_chain_innermost_last(self):
        try:
            try:
                try:
                    raise OSError("disk on fire")
                except OSError as e:
                    raise ValueError("bad document") from e
            except ValueError as e:
                raise MetadataError("Failed to load cargo metadata.") from e
        except MetadataError as e:
            lines = error_lines(e)

        assert lines == [
            "Error: Failed to load cargo metadata.",
            "Caused by: bad document",
            "Caused by: disk on fire",
        ]


class TestSetupLogging:

    @pytest.mark.parametrize("verbose,log_level,expected", [
        (False, None, logging.WARNING),
        (True, None, logging.INFO),
        (False, "TRACE", logging.DEBUG),
        (True, "ERROR", logging.ERROR),
        (False, "warn", logging.WARNING),
    ])
    def test_levels(self, monkeypatch, verbose, log_level, expected):
        captured = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

        setup_logging(verbose, log_level)

        assert captured["level"] == expected
