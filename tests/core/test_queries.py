import logging
import shutil
from pathlib import Path

import pytest

from hyprlang_provisioner.core import queries
from hyprlang_provisioner.core.exceptions import ConfigError
from hyprlang_provisioner.core.queries import distribute_queries


@pytest.fixture()
def layout(tmp_path: Path) -> dict[str, Path]:
    grammar_queries = tmp_path / "grammars" / "hyprlang" / "queries" / "hyprlang"
    shared = tmp_path / "hyprlang"
    languages = tmp_path / "languages"
    for path in (grammar_queries, shared, languages / "hyprlang", languages / "hyprland"):
        path.mkdir(parents=True)
    (grammar_queries / "highlights.scm").write_text("(comment) @comment\n")
    (grammar_queries / "nested").mkdir()
    (shared / "injections.scm").write_text("; injections\n")
    (languages / "README.md").write_text("not a language\n")
    return {"grammar": grammar_queries, "shared": shared, "languages": languages}


def test_every_query_lands_in_every_language(layout: dict[str, Path]) -> None:
    warnings = distribute_queries([layout["grammar"], layout["shared"]], layout["languages"])

    assert warnings == []
    for language in ("hyprlang", "hyprland"):
        target = layout["languages"] / language
        assert sorted(p.name for p in target.iterdir()) == [
            "highlights.scm",
            "injections.scm",
        ]
        assert (target / "highlights.scm").read_text() == "(comment) @comment\n"


def test_existing_query_files_are_overwritten(layout: dict[str, Path]) -> None:
    stale = layout["languages"] / "hyprlang" / "highlights.scm"
    stale.write_text("stale\n")

    distribute_queries([layout["grammar"]], layout["languages"])

    assert stale.read_text() == "(comment) @comment\n"


def test_missing_source_directory_is_fatal(layout: dict[str, Path], tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="query directory"):
        distribute_queries([tmp_path / "missing"], layout["languages"])


def test_missing_languages_directory_is_fatal(layout: dict[str, Path], tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="languages directory"):
        distribute_queries([layout["shared"]], tmp_path / "nowhere")


def test_copy_failures_become_warnings(
    layout: dict[str, Path],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    real_copy = shutil.copy

    def _copy(src, dst, *args, **kwargs):
        if Path(dst).parent.name == "hyprland":
            raise PermissionError("read-only")
        return real_copy(src, dst, *args, **kwargs)

    monkeypatch.setattr(queries.shutil, "copy", _copy)
    caplog.set_level(logging.WARNING, logger="hyprlang_provisioner.core.queries")

    warnings = distribute_queries([layout["grammar"], layout["shared"]], layout["languages"])

    assert len(warnings) == 2
    assert all(w.destination.parent.name == "hyprland" for w in warnings)
    assert str(warnings[0]).startswith("unable to copy ")
    assert "read-only" in str(warnings[0])
    assert (layout["languages"] / "hyprlang" / "injections.scm").exists()
    assert "queries.copy.failed" in caplog.text
