from pathlib import Path

import pytest

from hyprlang_provisioner.core.exceptions import ConfigError
from hyprlang_provisioner.core.grammar import GrammarSpec
from hyprlang_provisioner.core.manifest import load_extension_manifest

MANIFEST = """
id = "hyprlang"
name = "Hyprlang"
version = "0.2.1"

[grammars.hyprlang]
repository = "https://github.com/tree-sitter-grammars/tree-sitter-hyprlang"
commit = "0c6e1ab8c2d4f3a5b7e9d1c3f5a7b9d1e3f5a7b9"

[grammars.extra]
repository = "https://example.com/extra.git"
rev = "abc1234"
"""


def _manifest(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "extension.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_manifest_grammar_entries(tmp_path: Path) -> None:
    manifest = load_extension_manifest(_manifest(tmp_path, MANIFEST))

    assert manifest.id == "hyprlang"
    assert manifest.version == "0.2.1"
    assert manifest.grammar("hyprlang") == GrammarSpec(
        name="hyprlang",
        repository="https://github.com/tree-sitter-grammars/tree-sitter-hyprlang",
        commit="0c6e1ab8c2d4f3a5b7e9d1c3f5a7b9d1e3f5a7b9",
    )
    assert manifest.grammar("extra").commit == "abc1234"


def test_missing_grammar_is_config_error(tmp_path: Path) -> None:
    manifest = load_extension_manifest(_manifest(tmp_path, 'id = "hyprlang"\n'))

    assert manifest.grammars == {}
    with pytest.raises(ConfigError, match="does not specify a hyprlang grammar"):
        manifest.grammar("hyprlang")


def test_missing_manifest_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="unable to read"):
        load_extension_manifest(tmp_path / "extension.toml")


def test_invalid_toml(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="unable to parse"):
        load_extension_manifest(_manifest(tmp_path, "[grammars.hyprlang\n"))


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ('[grammars.hyprlang]\ncommit = "abc1234"\n', "repository"),
        ('[grammars.hyprlang]\nrepository = "https://x"\n', "commit"),
        ('[grammars.hyprlang]\nrepository = "https://x"\ncommit = ""\n', "commit"),
        ('grammars = "hyprlang"\n', "grammars must be a table"),
    ],
)
def test_incomplete_grammar_entries(tmp_path: Path, body: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_extension_manifest(_manifest(tmp_path, body))
