"""
Tests for the command-line interface.

Commands are driven through main(argv) against the sample project from
conftest.py; output is checked via capsys and the returned exit code.
"""

import json

import pyperclip
import pytest

from xcontext.cli import create_parser, exit_code_for, main
from xcontext.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILENAME, Config
from xcontext.errors import (
    ChunkingError,
    ConfigError,
    DataLoadingError,
    FileReadError,
    FileWriteError,
    GlobError,
    InvalidArgumentError,
    RuleLoadingError,
    SerializationError,
    TokenizerError,
    TomlParseError,
    TreeConflictError,
    XContextError,
)


def write_project_config(root, text):
    path = root / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def root_args(sample_project):
    return ["--project-root", str(sample_project)]


@pytest.fixture
def fixed_tokens(monkeypatch):
    monkeypatch.setattr("xcontext.metrics.count_tokens", lambda text: 1)


# =============================================================================
# Parser
# =============================================================================

class TestParser:

    def test_verbosity_after_subcommand(self):
        parser = create_parser()
        assert parser.parse_args(["generate", "-vv"]).verbose == 2
        assert parser.parse_args(["generate"]).verbose == 0
        assert parser.parse_args(["-q", "generate"]).quiet is True
        assert parser.parse_args(["metrics", "--quiet"]).quiet is True

    def test_aliases(self):
        parser = create_parser()
        for alias in ("g", "gen"):
            assert parser.parse_args([alias]).handler is parser.parse_args(["generate"]).handler

    def test_save_without_directory(self):
        args = create_parser().parse_args(["generate", "-s"])
        assert args.save == ""
        assert create_parser().parse_args(["generate"]).save is None

    def test_toggles_default_to_none(self):
        args = create_parser().parse_args(["generate"])
        assert args.tree_enabled is None
        assert args.use_gitignore is None
        assert args.json_minify is None

    def test_stdout_and_copy_are_exclusive(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["generate", "--stdout", "--copy"])
        assert exc_info.value.code == 2

    def test_context_file_options_are_exclusive(self, capsys):
        with pytest.raises(SystemExit):
            create_parser().parse_args(
                ["generate", "--context-file", "a", "--disable-context-file"]
            )

    @pytest.mark.parametrize("value", ["novalue", "=value"])
    def test_add_meta_validation(self, value, capsys):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["generate", "--add-meta", value])

    def test_add_meta_parsing(self):
        args = create_parser().parse_args(["generate", "--add-meta", " k = v=1 "])
        assert args.add_meta == [("k", "v=1")]

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("xcontext ")

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: xcontext" in capsys.readouterr().out


# =============================================================================
# generate
# =============================================================================

class TestGenerateCommand:

    def generate_json(self, capsys, args):
        assert main(["generate", "--stdout", "--exclude-system-info", *args]) == 0
        return json.loads(capsys.readouterr().out)

    def test_stdout_json(self, sample_project, root_args, capsys):
        data = self.generate_json(capsys, root_args)

        assert data["projectName"] == "sample"
        assert "systemInfo" not in data
        assert [f["path"] for f in data["source"]["files"]] == [
            ".gitignore", "empty.txt", "src/main.py", "src/util.py"
        ]
        assert [d["path"] for d in data["docs"]] == ["README.md", "docs/guide.md"]

    def test_overrides(self, root_args, capsys):
        data = self.generate_json(capsys, [
            *root_args,
            "--project-name", "Custom",
            "--disable-tree",
            "--disable-rules",
            "--add-meta", "owner=me",
            "--source-exclude", "src/util.py",
            "--exclude-timestamp",
        ])

        assert data["projectName"] == "Custom"
        assert "tree" not in data
        assert "rules" not in data
        assert "generationTimestamp" not in data
        assert data["meta"] == {"owner": "me"}
        assert "src/util.py" not in [f["path"] for f in data["source"]["files"]]

    def test_disable_gitignore(self, root_args, capsys):
        data = self.generate_json(capsys, [*root_args, "--disable-gitignore"])
        assert "ignored_dir/secret.py" in [f["path"] for f in data["source"]["files"]]

    def test_disable_builtin_ignore(self, root_args, capsys):
        data = self.generate_json(capsys, [*root_args, "--disable-builtin-ignore"])
        assert "Cargo.lock" in [f["path"] for f in data["source"]["files"]]

    def test_config_file_is_applied(self, sample_project, root_args, capsys):
        write_project_config(sample_project, '[general]\nproject_name = "FromConfig"\n')
        assert self.generate_json(capsys, root_args)["projectName"] == "FromConfig"

        disabled = self.generate_json(capsys, [*root_args, "--disable-context-file"])
        assert disabled["projectName"] == "sample"

    def test_save_to_default_directory(self, sample_project, root_args, capsys):
        assert main(["generate", *root_args, "-s"]) == 0

        saved = sample_project / ".xtools" / "xcontext" / "cache" / "sample.json"
        assert json.loads(saved.read_text())["projectName"] == "sample"
        assert "✅ Context saved to:" in capsys.readouterr().err

    def test_saved_context_is_not_walked_again(self, sample_project, root_args, capsys):
        assert main(["generate", *root_args, "-s"]) == 0
        data = self.generate_json(capsys, root_args)
        paths = [f["path"] for f in data["source"]["files"]]
        assert not any(p.startswith(".xtools") for p in paths)

    def test_save_yaml_to_directory(self, tmp_path, root_args):
        out = tmp_path / "out"
        assert main(["generate", *root_args, "-f", "yaml", "-s", str(out)]) == 0
        assert (out / "sample.yaml").read_text().startswith("aiReadme:")

    def test_quiet_save(self, root_args, capsys):
        assert main(["-q", "generate", *root_args, "-s"]) == 0
        assert capsys.readouterr().err == ""

    def test_copy_to_clipboard(self, root_args, monkeypatch, capsys):
        copied = []
        monkeypatch.setattr(pyperclip, "copy", copied.append)

        assert main(["generate", *root_args, "--copy"]) == 0

        assert json.loads(copied[0])["projectName"] == "sample"
        assert capsys.readouterr().out == ""

    def test_chunked_output(self, tmp_path, root_args, capsys):
        out = tmp_path / "chunks"
        assert main(["generate", *root_args, "-c", "1KB", "-s", str(out)]) == 0

        chunk = json.loads((out / "sample_chunk_1.json").read_text())
        assert chunk["chunkInfo"] == {"currentPart": 1, "totalParts": 1}
        assert "src/main.py" in [f["path"] for f in chunk["files"]]

        main_context = json.loads((out / "sample.json").read_text())
        assert main_context["source"] == {"chunks": ["sample_chunk_1.json"]}
        assert "📦 Chunk saved to:" in capsys.readouterr().err

    def test_chunks_without_save_or_stdout(self, sample_project, root_args, capsys):
        assert main(["generate", *root_args, "-c", "1KB"]) == 0
        cache = sample_project / ".xtools" / "xcontext" / "cache"
        assert (cache / "sample_chunk_1.json").exists()
        assert not (cache / "sample.json").exists()
        assert "Source content chunked and saved in" in capsys.readouterr().err

    @pytest.mark.parametrize("extra, code", [
        (["-c", "1KB", "-f", "yaml"], 3),
        (["-c", "lots"], 3),
        (["-c", "1KB", "--disable-source"], 5),
        (["-c", "1KB", "--stdout"], 5),
        (["--source-include", "[bad"], 2),
    ])
    def test_error_exit_codes(self, root_args, extra, code, capsys):
        assert main(["generate", *root_args, *extra]) == code
        assert "❌ Error:" in capsys.readouterr().err

    def test_invalid_config_file(self, sample_project, root_args, capsys):
        write_project_config(sample_project, "[bogus]\nx = 1\n")
        assert main(["generate", *root_args, "--stdout"]) == 1
        assert "Unknown field" in capsys.readouterr().err

    def test_missing_project_root(self, tmp_path, capsys):
        assert main(["generate", "--project-root", str(tmp_path / "missing")]) == 1


# =============================================================================
# show
# =============================================================================

class TestShowCommand:

    def test_prompts(self, root_args, capsys):
        assert main(["show", "prompts", *root_args]) == 0
        assert "▶ static:refactor:" in capsys.readouterr().out

    def test_single_prompt(self, root_args, capsys):
        assert main(["show", "prompt", "refactor", *root_args]) == 0
        assert capsys.readouterr().out.startswith("Refactor")

    def test_single_prompt_structured(self, root_args, capsys):
        assert main(["show", "prompt", "refactor", "-f", "json", *root_args]) == 0
        assert json.loads(capsys.readouterr().out)["value"].startswith("Refactor")

    def test_prompt_without_name_lists_keys(self, root_args, capsys):
        assert main(["show", "prompt", *root_args]) == 0
        assert "static:refactor" in capsys.readouterr().err

    def test_meta(self, sample_project, root_args, capsys):
        write_project_config(sample_project, '[meta]\nowner = "team"\n')

        assert main(["show", "meta", "owner", *root_args]) == 0
        assert capsys.readouterr().out == "team\n"

        assert main(["show", "metas", *root_args]) == 0
        assert "owner" in capsys.readouterr().out

    def test_missing_meta_key(self, sample_project, root_args, capsys):
        write_project_config(sample_project, '[meta]\nowner = "team"\n')

        assert main(["show", "meta", "nope", *root_args]) == 1

        err = capsys.readouterr().err
        assert "Available metadata keys" in err
        assert "- owner" in err
        assert 'Metadata key "nope" not found' in err

    def test_rules(self, root_args, capsys):
        assert main(["show", "rules", *root_args]) == 0
        out = capsys.readouterr().out
        assert "▶ static:general (default):" in out
        assert "▶ static:python (dynamic):" in out

    def test_single_rule_structured(self, root_args, capsys):
        assert main(["show", "rule", "general", "-f", "json", *root_args]) == 0
        value = json.loads(capsys.readouterr().out)["value"]
        assert isinstance(value, list) and value

    def test_missing_rule(self, root_args, capsys):
        assert main(["show", "rule", "cobol", *root_args]) == 1
        assert "Available rule set keys" in capsys.readouterr().err

    def test_rules_disabled(self, sample_project, root_args, capsys):
        write_project_config(sample_project, "[rules]\nenabled = false\n")
        assert main(["show", "rules", *root_args]) == 0
        assert "Rules section is disabled" in capsys.readouterr().err


# =============================================================================
# quick / metrics / debug
# =============================================================================

class TestQuickCommand:

    def test_directory_input(self, root_args, capsys):
        assert main(["quick", "src/", *root_args]) == 0
        files = json.loads(capsys.readouterr().out)["files"]
        assert list(files) == ["src/main.py", "src/util.py"]
        assert files["src/main.py"] == "print('hi')\n"

    def test_glob_input(self, root_args, capsys):
        assert main(["quick", "*.md", *root_args]) == 0
        assert set(json.loads(capsys.readouterr().out)["files"]) == {
            "README.md", "docs/guide.md"
        }

    def test_no_match(self, root_args, capsys):
        assert main(["quick", "*.nothing", *root_args]) == 0
        assert "No files matched the pattern" in capsys.readouterr().out

    def test_invalid_pattern(self, root_args):
        assert main(["quick", "{broken", *root_args]) == 2


class TestMetricsCommand:

    def test_table(self, root_args, fixed_tokens, capsys):
        assert main(["metrics", *root_args]) == 0
        out = capsys.readouterr().out
        assert "📊 Project Metrics Summary" in out
        assert "src/main.py" in out

    def test_structured(self, root_args, fixed_tokens, capsys):
        assert main(["metrics", "-f", "json", *root_args]) == 0
        data = json.loads(capsys.readouterr().out)
        # empty.txt is skipped; .gitignore, two sources and two docs remain
        assert data["total_files"] == 5
        assert data["estimated_tokens"] == 5


class TestDebugCommand:

    def test_text(self, root_args, capsys):
        assert main(["debug", *root_args]) == 0
        out = capsys.readouterr().out
        assert "--- Effective Configuration ---" in out
        assert "- src/main.py" in out
        assert "├── src/" in out or "└── src/" in out
        assert "static:general" in out

    def test_structured(self, root_args, capsys):
        assert main(["debug", "-f", "json", *root_args]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["config_file"] is None
        assert "src/main.py" in data["source_files_to_include"]
        assert ["src", True] in data["tree_elements_to_include"]
        assert data["resolved_rules"]["origins"]["static:general"] == "default"


# =============================================================================
# config / watch
# =============================================================================

class TestConfigCommand:

    def test_prints_template(self, capsys):
        assert main(["config"]) == 0
        assert "[general]" in capsys.readouterr().out

    def test_saved_template_loads(self, tmp_path, capsys):
        assert main(["config", "--save", "--project-root", str(tmp_path)]) == 0
        path = tmp_path / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILENAME
        assert Config.load_from_path(path) == Config()

    def test_existing_config_kept_without_confirmation(self, tmp_path, monkeypatch):
        path = write_project_config(tmp_path, "# mine\n")
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert main(["config", "--save", "--project-root", str(tmp_path)]) == 0
        assert path.read_text() == "# mine\n"

    def test_force_overwrites(self, tmp_path):
        path = write_project_config(tmp_path, "# mine\n")
        assert main(["config", "--save", "--force", "--project-root", str(tmp_path)]) == 0
        assert "[general]" in path.read_text()


class TestWatchCommand:

    def test_starts_watcher(self, sample_project, root_args, monkeypatch):
        started = {}

        class FakeWatcher:
            def __init__(self, project_root, load_config, regenerate, quiet=False):
                started["root"] = project_root
                started["config"] = load_config()[0]

            def run(self):
                started["ran"] = True

        monkeypatch.setattr("xcontext.cli.ContextWatcher", FakeWatcher)

        assert main(["watch", *root_args, "--watch-delay", "1s"]) == 0
        assert started["root"] == sample_project.resolve()
        assert started["config"].watch.delay == "1s"
        assert started["ran"]

    def test_interrupt_exits_130(self, root_args, monkeypatch, capsys):
        class InterruptedWatcher:
            def __init__(self, *args, **kwargs):
                pass

            def run(self):
                raise KeyboardInterrupt

        monkeypatch.setattr("xcontext.cli.ContextWatcher", InterruptedWatcher)
        assert main(["watch", *root_args]) == 130


# =============================================================================
# Exit codes
# =============================================================================

class TestExitCodes:

    @pytest.mark.parametrize("error, code", [
        (ConfigError("x"), 1),
        (TomlParseError("x"), 1),
        (TreeConflictError("a"), 1),
        (DataLoadingError("x"), 1),
        (GlobError("[", "[", "bad"), 2),
        (FileReadError("p", OSError("x")), 2),
        (FileWriteError("p", OSError("x")), 2),
        (RuleLoadingError("x"), 2),
        (ChunkingError("x"), 3),
        (InvalidArgumentError("x"), 5),
        (SerializationError("x"), 6),
        (TokenizerError("x"), 8),
        (XContextError("x"), 1),
    ])
    def test_mapping(self, error, code):
        assert exit_code_for(error) == code
