"""Tests for hyperpwn.context.detector.ContextDetector."""

from __future__ import annotations

from hyperpwn.context.detector import (
    ContextDetector,
    DetectorState,
    Fragment,
    FragmentKind,
    RegexMarkers,
)

BEFORE = "gef> context\r\n"
BODY = " Modified register | Code | Heap ]\r\n──── regs ────\r\n  rax 0x0  \r\n"
AFTER = "gef> "
STREAM = BEFORE + "[ Legend:" + BODY + "\r\n\x1b[1;30m──────────\x1b[0m\r\n" + AFTER


def _feed_all(detector: ContextDetector, chunks: list[str]) -> list[Fragment]:
    fragments: list[Fragment] = []
    for chunk in chunks:
        fragments.extend(detector.feed(chunk))
    return fragments


def _passed(fragments: list[Fragment]) -> str:
    return "".join(f.text for f in fragments if f.kind is FragmentKind.PASS)


def _blocks(fragments: list[Fragment]) -> list[str]:
    return [f.text for f in fragments if f.kind is FragmentKind.BLOCK]


# ---------------------------------------------------------------------------
# Single-chunk detection
# ---------------------------------------------------------------------------


class TestDetectWholeChunk:
    def test_plain_text_passes_through(self) -> None:
        det = ContextDetector()
        assert det.feed("hello\r\n") == [Fragment(FragmentKind.PASS, "hello\r\n")]
        assert det.state is DetectorState.IDLE

    def test_block_extracted(self) -> None:
        fragments = ContextDetector().feed(STREAM)
        assert fragments == [
            Fragment(FragmentKind.PASS, BEFORE),
            Fragment(FragmentKind.BLOCK, BODY),
            Fragment(FragmentKind.PASS, AFTER),
        ]

    def test_marker_text_is_dropped(self) -> None:
        (block,) = _blocks(ContextDetector().feed(STREAM))
        assert "Legend:" not in block

    def test_legend_without_bracket(self) -> None:
        text = "legend: x\r\n── a ──\r\nbody\r\n\r\n────\r\n"
        assert _blocks(ContextDetector().feed(text)) == [" x\r\n── a ──\r\nbody\r\n"]

    def test_case_insensitive(self) -> None:
        text = "LEGEND:\r\n── a ──\r\nbody\r\n\r\n────\r\n"
        assert len(_blocks(ContextDetector().feed(text))) == 1

    def test_marker_must_start_a_line(self) -> None:
        text = "see legend: below\r\n────\r\n"
        det = ContextDetector()
        assert _passed(det.feed(text)) == text
        assert not det.is_open

    def test_rule_with_text_is_not_an_end_marker(self) -> None:
        det = ContextDetector()
        det.feed("legend:\r\n──── stack ────\r\n")
        assert det.is_open

    def test_two_blocks_in_one_chunk(self) -> None:
        one = "legend: 1\r\n── a ──\r\nA\r\n\r\n────\r\n"
        two = "legend: 2\r\n── a ──\r\nB\r\n\r\n────\r\n"
        fragments = ContextDetector().feed("x\r\n" + one + "y\r\n" + two + "z")
        assert _blocks(fragments) == [" 1\r\n── a ──\r\nA\r\n", " 2\r\n── a ──\r\nB\r\n"]
        assert _passed(fragments) == "x\r\ny\r\nz"

    def test_lf_only_line_breaks(self) -> None:
        text = "legend:\n── a ──\nbody\n\n────\nafter"
        fragments = ContextDetector().feed(text)
        assert _blocks(fragments) == ["\n── a ──\nbody\n"]
        assert _passed(fragments) == "after"


# ---------------------------------------------------------------------------
# Chunk boundaries
# ---------------------------------------------------------------------------


class TestChunkBoundaries:
    def test_every_two_way_split_matches_single_chunk(self) -> None:
        expected = ContextDetector().feed(STREAM)
        for i in range(1, len(STREAM)):
            det = ContextDetector()
            fragments = _feed_all(det, [STREAM[:i], STREAM[i:]])
            assert _blocks(fragments) == _blocks(expected), f"split at {i}"
            assert _passed(fragments) == _passed(expected), f"split at {i}"

    def test_char_by_char(self) -> None:
        det = ContextDetector()
        fragments = _feed_all(det, list(STREAM))
        assert _blocks(fragments) == [BODY]
        assert _passed(fragments) == BEFORE + AFTER

    def test_open_block_suppresses_output(self) -> None:
        det = ContextDetector()
        assert _passed(det.feed(BEFORE + "[ Legend:")) == BEFORE
        assert det.is_open
        assert det.feed("more context\r\n") == []
        assert det.feed("── regs ──\r\n") == []
        assert det.pending > 0

    def test_partial_start_marker_is_held(self) -> None:
        det = ContextDetector()
        assert _passed(det.feed("gef> \r\n[ Leg")) == "gef> \r\n"
        fragments = det.feed("end: x\r\n── a ──\r\nA\r\n\r\n──\r\n")
        assert _blocks(fragments) == [" x\r\n── a ──\r\nA\r\n"]

    def test_held_text_released_when_not_a_marker(self) -> None:
        det = ContextDetector()
        det.feed("ok\r\nleg")
        assert _passed(det.feed("acy code\r\n")) == "legacy code\r\n"

    def test_chunk_start_mid_line_is_not_a_line_start(self) -> None:
        det = ContextDetector()
        fragments = _feed_all(det, ["abc", "legend: x\r\n"])
        assert _passed(fragments) == "abclegend: x\r\n"
        assert not det.is_open

    def test_flush_releases_held_text(self) -> None:
        det = ContextDetector()
        det.feed("line\r\nlege")
        assert det.flush() == "lege"
        assert det.flush() == ""


# ---------------------------------------------------------------------------
# Open blocks
# ---------------------------------------------------------------------------


class TestOpenBlock:
    def test_second_start_marker_ignored(self) -> None:
        det = ContextDetector()
        det.feed("legend: one\r\n")
        det.feed("legend: two\r\n── a ──\r\nA\r\n")
        (block,) = _blocks(det.feed("\r\n────\r\n"))
        assert block == " one\r\nlegend: two\r\n── a ──\r\nA\r\n"

    def test_unterminated_block_keeps_buffering(self) -> None:
        det = ContextDetector()
        det.feed("legend:")
        for _ in range(10):
            assert det.feed("line\r\n") == []
        assert det.is_open
        assert det.pending == len("line\r\n") * 10

    def test_reset_discards_block(self) -> None:
        det = ContextDetector()
        det.feed("legend: x\r\n")
        det.reset()
        assert det.state is DetectorState.IDLE
        assert det.pending == 0
        assert _passed(det.feed("text")) == "text"

    def test_state_returns_to_idle(self) -> None:
        det = ContextDetector()
        det.feed(STREAM)
        assert det.state is DetectorState.IDLE
        assert det.pending == 0


# ---------------------------------------------------------------------------
# Several sources
# ---------------------------------------------------------------------------


class TestSources:
    def test_held_prefix_stays_with_its_source(self) -> None:
        det = ContextDetector()
        assert _passed(det.feed("gef> x\r\n[", "gdb")) == "gef> x\r\n"
        assert det.held("gdb") == "["
        assert _passed(det.feed("ls output\r\n", "shell")) == "ls output\r\n"
        assert det.held("gdb") == "["
        assert _passed(det.feed("1, 2]\r\n", "gdb")) == "[1, 2]\r\n"

    def test_other_source_mid_line_does_not_hide_marker(self) -> None:
        det = ContextDetector()
        det.feed("gef> ni\r\n", "gdb")
        det.feed("$ ", "shell")
        fragments = det.feed(STREAM, "gdb")
        assert _blocks(fragments) == [BODY]

    def test_line_start_tracked_per_source(self) -> None:
        det = ContextDetector()
        det.feed("abc", "shell")
        fragments = det.feed("legend: x\r\n", "gdb")
        assert _passed(fragments) == ""
        assert det.is_open

    def test_flush_only_releases_own_source(self) -> None:
        det = ContextDetector()
        det.feed("a\r\nleg", "gdb")
        det.feed("b\r\n[ Le", "other")
        assert det.flush("gdb") == "leg"
        assert det.flush("gdb") == ""
        assert det.flush("other") == "[ Le"
        assert det.flush("unknown") == ""

    def test_open_block_ignores_other_sources(self) -> None:
        det = ContextDetector()
        det.feed("legend: y\r\n── a ──\r\n", "gdb")
        assert det.state_of("gdb") is DetectorState.ACCUMULATING
        assert det.state_of("shell") is DetectorState.IDLE
        assert _passed(det.feed("$ ls\r\nfile\r\n", "shell")) == "$ ls\r\nfile\r\n"
        (block,) = _blocks(det.feed("A\r\n\r\n──\r\n", "gdb"))
        assert block == " y\r\n── a ──\r\nA\r\n"

    def test_blocks_open_in_two_sources(self) -> None:
        det = ContextDetector()
        det.feed("legend: one\r\n", "a")
        det.feed("legend: two\r\n", "b")
        assert _blocks(det.feed("── x ──\r\nB\r\n\r\n──\r\n", "b")) == [" two\r\n── x ──\r\nB\r\n"]
        assert det.is_open
        assert _blocks(det.feed("── y ──\r\nA\r\n\r\n──\r\n", "a")) == [" one\r\n── y ──\r\nA\r\n"]
        assert not det.is_open

    def test_reset_one_source(self) -> None:
        det = ContextDetector()
        det.feed("legend: x\r\n", "gdb")
        det.feed("a\r\nleg", "other")
        det.reset("gdb")
        assert det.state_of("gdb") is DetectorState.IDLE
        assert det.held("other") == "leg"

    def test_reset_clears_every_source(self) -> None:
        det = ContextDetector()
        det.feed("a\r\nleg", "gdb")
        det.feed("$ ", "shell")
        det.reset()
        assert det.held("gdb") == ""
        assert _blocks(det.feed("legend: x\r\n── a ──\r\nA\r\n\r\n──\r\n", "shell"))


# ---------------------------------------------------------------------------
# Pluggable markers
# ---------------------------------------------------------------------------


class BracketMarkers:
    """Blocks delimited by <<< and >>> anywhere in the stream."""

    def find_start(self, text: str, pos: int = 0) -> tuple[int, int] | None:
        i = text.find("<<<", pos)
        return (i, i + 3) if i >= 0 else None

    def find_end(self, text: str) -> tuple[int, int] | None:
        i = text.find(">>>")
        return (i, i + 3) if i >= 0 else None

    def partial_start(self, text: str) -> bool:
        return text in ("<", "<<")


class TestMarkerMatcher:
    def test_custom_matcher(self) -> None:
        det = ContextDetector(BracketMarkers())
        fragments = det.feed("a\n<<<inside>>>b")
        assert _blocks(fragments) == ["inside"]
        assert _passed(fragments) == "a\nb"

    def test_regex_markers_partial_start(self) -> None:
        markers = RegexMarkers()
        assert markers.partial_start("[")
        assert markers.partial_start("[ LEG")
        assert markers.partial_start("legend")
        assert not markers.partial_start("legend:")
        assert not markers.partial_start("")
        assert not markers.partial_start("lx")

    def test_regex_markers_end(self) -> None:
        markers = RegexMarkers()
        assert markers.find_end("a\r\n───\r\n") == (1, 8)
        assert markers.find_end("a\r\n\x1b[90m───\x1b[0m\r\n") is not None
        assert markers.find_end("a\r\n── x ──\r\n") is None
