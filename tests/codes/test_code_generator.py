from datetime import datetime, timezone

from src.scan_attendance.scan_attendance.codes.generator import CodeGenerator, parse_code, phase_tag, tokens_match


def test_issue_builds_wire_format_with_phase_tag_token_and_epoch_ms():
    now = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)
    issued = CodeGenerator().issue(2, now=now)

    tag, token, issued_ms = issued.code.split(":")
    assert tag == "scan2"
    assert token == issued.human_code
    assert int(issued_ms) == int(now.timestamp() * 1000)
    assert issued.phase == 2
    assert issued.issued_at == now


def test_tokens_are_six_uppercase_base36_characters():
    gen = CodeGenerator()
    for _ in range(50):
        token = gen.new_token()
        assert len(token) == 6
        assert all(c.isdigit() or ("A" <= c <= "Z") for c in token)


def test_parse_code_reads_parts_positionally():
    parsed = parse_code("scan3:AB12CD:1741000000000")

    assert parsed.phase == 3
    assert parsed.token == "AB12CD"
    assert parsed.issued_at_ms == 1741000000000


def test_parse_code_tolerates_missing_and_malformed_parts():
    assert parse_code("").phase is None
    assert parse_code("").token == ""

    manual = parse_code("scan1:XYZ789")
    assert manual.phase == 1
    assert manual.issued_at_ms is None

    bad_tag = parse_code("phase1:XYZ789:1")
    assert bad_tag.phase is None
    assert bad_tag.phase_label() == "unknown"


def test_token_comparison_is_case_insensitive_and_rejects_empty():
    assert tokens_match("ab12cd", "AB12CD")
    assert not tokens_match("AB12CE", "AB12CD")
    assert not tokens_match("", "AB12CD")


def test_phase_tag():
    assert phase_tag(1) == "scan1"
