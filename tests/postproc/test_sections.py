"""Tests for leading title and badge handling."""

from __future__ import annotations

from docsync.postproc.sections import SectionStripper, is_badge_line, leading_title_end

BADGES = "[![Crates.io](https://img.shields.io/crates/v/demo.svg)](https://crates.io/crates/demo) ![CI](https://ci/badge.svg)"


def _strip(text: str, **flags: bool) -> str:
    lines = text.split("\n")
    out, origins = SectionStripper(**flags).strip(lines, list(range(len(lines))))
    assert len(out) == len(origins)
    return "\n".join(out)


def test_is_badge_line() -> None:
    assert is_badge_line(BADGES)
    assert is_badge_line('<a href="x"><img src="y"></a>')
    assert not is_badge_line("See ![diagram](d.png) for details")
    assert not is_badge_line("")


def test_stripping_is_off_by_default() -> None:
    text = f"# demo\n\n{BADGES}\n\nBody"
    assert _strip(text) == text


def test_strip_title_only() -> None:
    assert _strip(f"# demo\n\n{BADGES}\n\nBody", strip_title=True) == f"{BADGES}\n\nBody"


def test_strip_badges_after_title() -> None:
    assert _strip(f"# demo\n\n{BADGES}\n\nBody", strip_badges=True) == "# demo\n\nBody"


def test_strip_both() -> None:
    assert _strip(f"# demo\n\n{BADGES}\n\nBody", strip_title=True, strip_badges=True) == "Body"


def test_badges_must_lead_the_document() -> None:
    text = f"Intro\n\n{BADGES}"
    assert _strip(text, strip_badges=True) == text


def test_title_followed_by_text_is_not_a_title_block() -> None:
    text = "# demo\nimmediately continued"
    assert _strip(text, strip_title=True) == text


def test_leading_title_end_includes_badges() -> None:
    lines = ["# demo", "", BADGES, "", "Intro"]
    assert leading_title_end(lines) == 3
    assert leading_title_end(["# demo", "", "Intro"]) == 1
    assert leading_title_end(["## not top level"]) is None
