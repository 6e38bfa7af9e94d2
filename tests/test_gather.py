"""
Tests for the gather engine: one walk, per-section classification, reading.

Uses the sample_project fixture from conftest.py.
"""

import sys

import pytest

from xcontext.config import Config
from xcontext.errors import FileReadError, GlobError
from xcontext.gather import gather, report_read_errors, select_paths


def relative(files, root):
    return [f.path.relative_to(root).as_posix() for f in files]


class TestGatherSelection:
    """What ends up in each section for the default config."""

    def test_source_files(self, sample_project):
        source, _, _ = gather(sample_project, Config())
        assert set(relative(source, sample_project)) == {
            ".gitignore",
            "empty.txt",
            "src/main.py",
            "src/util.py",
        }

    def test_docs_files(self, sample_project):
        _, docs, _ = gather(sample_project, Config())
        assert relative(docs, sample_project) == ["README.md", "docs/guide.md"]

    def test_docs_and_source_are_disjoint(self, sample_project):
        source, docs, _ = gather(sample_project, Config())
        assert not {f.path for f in source} & {f.path for f in docs}

    def test_source_sorted_by_path(self, sample_project):
        source, _, _ = gather(sample_project, Config())
        paths = [f.path for f in source]
        assert paths == sorted(paths)

    def test_tree_entries(self, sample_project):
        _, _, tree = gather(sample_project, Config())
        paths = [p for p, _ in tree]

        assert paths == sorted(paths)
        assert ("src", True) in tree
        assert ("src/main.py", False) in tree
        # built-in source ignores do not hide files from the tree
        assert ("Cargo.lock", False) in tree
        assert ("data.bin", False) in tree
        assert not any(p.startswith("node_modules") for p in paths)
        assert "src/debug.log" not in paths
        assert not any(p.startswith(".git/") or p == ".git" for p in paths)

    def test_ignored_files_never_selected(self, sample_project):
        source, docs, tree = gather(sample_project, Config())
        everything = set(relative(source, sample_project)) | set(relative(docs, sample_project))
        everything |= {p for p, _ in tree}
        assert "ignored_dir/secret.py" not in everything
        assert "src/debug.log" not in everything

    def test_gitignore_disabled(self, sample_project):
        config = Config()
        config.general.use_gitignore = False
        source, _, _ = gather(sample_project, config)
        names = set(relative(source, sample_project))
        assert "ignored_dir/secret.py" in names
        # *.log is still a built-in source ignore
        assert "src/debug.log" not in names

    def test_non_utf8_is_dropped_silently(self, sample_project, capsys):
        source, _, _ = gather(sample_project, Config())
        assert "data.bin" not in relative(source, sample_project)
        assert capsys.readouterr().err == ""

    def test_empty_file_is_kept(self, sample_project):
        source, _, _ = gather(sample_project, Config())
        empty = [f for f in source if f.path.name == "empty.txt"]
        assert empty and empty[0].size == 0


class TestGatherConfiguration:
    """Section toggles and filter errors."""

    def test_disabled_sections_select_nothing(self, sample_project):
        config = Config()
        config.tree.enabled = False
        config.source.enabled = False
        config.docs.enabled = False
        assert gather(sample_project, config) == ([], [], [])

    def test_source_include_restricts(self, sample_project):
        config = Config()
        config.source.include = ["src/**/*.py"]
        source, _, _ = gather(sample_project, config)
        assert relative(source, sample_project) == ["src/main.py", "src/util.py"]

    def test_invalid_glob_aborts_before_walking(self, sample_project, monkeypatch):
        def fail_walk(*args, **kwargs):
            raise AssertionError("walk should not start")

        monkeypatch.setattr(sys.modules["xcontext.gather"], "walk_project", fail_walk)
        config = Config()
        config.docs.include = ["{unclosed"]

        with pytest.raises(GlobError):
            gather(sample_project, config)

    def test_read_errors_are_reported_not_raised(self, sample_project, monkeypatch, capsys):
        def failing_read_files(paths):
            paths = list(paths)
            errors = [FileReadError(p, PermissionError("denied")) for p in paths]
            return [], errors

        monkeypatch.setattr(sys.modules["xcontext.gather"], "read_files", failing_read_files)
        source, docs, _ = gather(sample_project, Config())

        assert source == [] and docs == []
        err = capsys.readouterr().err
        assert "Errors encountered during file reading" in err
        assert "denied" in err

    def test_quiet_suppresses_read_error_report(self, sample_project, monkeypatch, capsys):
        monkeypatch.setattr(
            sys.modules["xcontext.gather"], "read_files",
            lambda paths: ([], [FileReadError(p, OSError("boom")) for p in paths]),
        )
        gather(sample_project, Config(), quiet=True)
        assert capsys.readouterr().err == ""


class TestReportReadErrors:

    def test_nothing_printed_without_errors(self, capsys):
        report_read_errors([])
        assert capsys.readouterr().err == ""

    def test_block_format(self, tmp_path, capsys):
        report_read_errors([FileReadError(tmp_path / "x", OSError("nope"))])
        err = capsys.readouterr().err
        assert err.startswith("\n⚠️ Warning: Errors encountered during file reading:")
        assert " - File Read Error:" in err
        assert err.rstrip().endswith("---")


class TestSelectPaths:
    """Classification without reading contents."""

    def test_matches_gather_selection(self, sample_project):
        selected = select_paths(sample_project, Config())
        source, docs, tree = gather(sample_project, Config())

        assert {f.path for f in source} <= set(selected.source_paths)
        assert [f.path for f in docs] == sorted(selected.docs_paths)
        assert selected.tree_entries == tree

    def test_reads_nothing(self, sample_project, monkeypatch):
        def no_reading(paths):
            raise AssertionError("select_paths must not read files")

        monkeypatch.setattr(sys.modules["xcontext.gather"], "read_files", no_reading)
        selected = select_paths(sample_project, Config())
        assert sample_project / "src" / "main.py" in selected.source_paths
