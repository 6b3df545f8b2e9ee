"""Tests for the TOML configuration layer."""

import pytest

from symbv.config import (
    SymbvConfig,
    find_config_file,
    generate_default_config,
    get_config,
    init_config,
    load_config,
    set_config,
)
from symbv.logging import LogLevel


class TestDefaults:
    def test_default_values(self):
        config = SymbvConfig()
        assert config.solver.name == "z3"
        assert config.solver.in_process
        assert config.solver.timeout_ms == 10000
        assert config.runtime.max_workers == 4
        assert config.codegen.cc == "gcc"
        assert config.output.level is LogLevel.NORMAL

    def test_unknown_log_level_falls_back(self):
        config = SymbvConfig()
        config.output.log_level = "chatty"
        assert config.output.level is LogLevel.NORMAL


class TestLoading:
    def test_symbv_toml(self, tmp_path):
        path = tmp_path / "symbv.toml"
        path.write_text(
            '[solver]\nname = "cvc5"\nin_process = false\noptions = ["--lang", "smt2"]\n'
            "[runtime]\nmax_workers = 2\n"
        )
        config = load_config(path)
        assert config.solver.name == "cvc5"
        assert not config.solver.in_process
        assert config.solver.options == ["--lang", "smt2"]
        assert config.runtime.max_workers == 2
        assert config.config_file == path
        assert config.project_root == tmp_path

    def test_pyproject_section(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "demo"\n\n[tool.symbv.codegen]\ncc = "clang"\ndriver = false\n'
        )
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)
        config = load_config(start_dir=nested)
        assert config.codegen.cc == "clang"
        assert not config.codegen.driver

    def test_find_prefers_symbv_toml(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text("")
        (tmp_path / "symbv.toml").write_text("")
        assert find_config_file(tmp_path) == tmp_path / "symbv.toml"

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path, isolated_environment):
        path = tmp_path / "symbv.toml"
        path.write_text("[solver\nname = ")
        config = load_config(path)
        assert config.solver.name == "z3"
        assert isolated_environment.get_entries(category="config")


class TestWriting:
    def test_round_trip(self, tmp_path):
        config = SymbvConfig()
        config.solver.name = "cvc4"
        config.solver.options = ["--lang", "smt"]
        config.codegen.ccflags = '-O2 -DNAME="x"'
        path = tmp_path / "symbv.toml"
        path.write_text(config.to_toml())
        loaded = load_config(path)
        assert loaded.to_dict() == config.to_dict()

    def test_default_config_text(self):
        text = generate_default_config()
        assert "[tool.symbv.solver]" in text
        assert 'name = "z3"' in text
        assert "executable" not in text

    def test_init_config(self, tmp_path):
        path = init_config(tmp_path)
        assert path.read_text() == generate_default_config()
        with pytest.raises(FileExistsError):
            init_config(tmp_path)


def test_process_wide_config():
    custom = SymbvConfig()
    custom.runtime.max_workers = 9
    set_config(custom)
    assert get_config() is custom
