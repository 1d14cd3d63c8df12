import pytest

from sqlchart.commands import (
    CHART_TYPES,
    HELP_ENTRIES,
    ChartCommand,
    match_prefix,
    parse_chart_command,
    split_commands,
)


def test_split_commands_handles_semicolons_and_quotes():
    raw = "chart data select 'Q1; Q2', b from t; chart type bar"
    commands = split_commands(raw)
    assert commands == ["chart data select 'Q1; Q2', b from t", "chart type bar"]


def test_split_commands_keeps_backslashes():
    assert split_commands(r"select 'C:\temp\new' as p") == [r"select 'C:\temp\new' as p"]


def test_split_commands_doubled_quote_stays_inside_literal():
    raw = "select 'it''s; fine' as x; chart type bar"
    assert split_commands(raw) == ["select 'it''s; fine' as x", "chart type bar"]


def test_split_commands_title_apostrophe_does_not_swallow_line():
    raw = "chart title Bob's sales; chart type pie"
    assert split_commands(raw) == ["chart title Bob's sales", "chart type pie"]


def test_split_commands_unclosed_quote_is_literal():
    raw = "select 'a; chart type pie"
    assert split_commands(raw) == ["select 'a", "chart type pie"]


def test_split_commands_drops_empty_statements():
    assert split_commands(";; select 1 ;  ;") == ["select 1"]


def test_parse_chart_type():
    parsed = parse_chart_command("chart type pie")
    assert isinstance(parsed, ChartCommand)
    assert parsed.kind == "type"
    assert parsed.argument == "pie"


@pytest.mark.parametrize("chart_type", CHART_TYPES)
def test_parse_chart_type_accepts_every_supported_type(chart_type):
    assert parse_chart_command(f"chart type {chart_type}").argument == chart_type


def test_parse_chart_type_rejects_unknown_type():
    with pytest.raises(ValueError) as excinfo:
        parse_chart_command("chart type donut")
    assert "lineWithArea" in str(excinfo.value)


def test_parse_chart_type_requires_argument():
    with pytest.raises(ValueError):
        parse_chart_command("chart type")


def test_parse_chart_data_keeps_statement_text():
    parsed = parse_chart_command("  chart data SELECT MEASURE, JAN, FEB FROM facts;  ")
    assert parsed.kind == "data"
    assert parsed.argument == "SELECT MEASURE, JAN, FEB FROM facts"


def test_parse_chart_data_accepts_with_clause():
    parsed = parse_chart_command("chart data with x as (select 1 a) select 'A', a from x")
    assert parsed.kind == "data"


def test_chart_data_without_select_shows_window():
    for line in ("chart data delete from facts", "chart data"):
        parsed = parse_chart_command(line)
        assert parsed.kind == "show"
        assert "SELECT" in parsed.warning


def test_parse_chart_title_keeps_free_text():
    parsed = parse_chart_command("chart title Sales by  month")
    assert parsed.kind == "title"
    assert parsed.argument == "Sales by  month"


def test_parse_chart_title_may_be_empty():
    parsed = parse_chart_command("chart title")
    assert parsed.kind == "title"
    assert parsed.argument == ""


def test_parse_bare_and_simple_commands():
    assert parse_chart_command("chart").kind == "show"
    assert parse_chart_command("chart screenshot").kind == "screenshot"
    assert parse_chart_command("chart help").kind == "help"


def test_parse_simple_commands_reject_arguments():
    with pytest.raises(ValueError):
        parse_chart_command("chart screenshot now")


def test_unknown_chart_subcommand_shows_window():
    parsed = parse_chart_command("chart bogus")
    assert parsed.kind == "show"
    assert "chart bogus" in parsed.warning


def test_parse_curl_takes_first_token_as_url():
    parsed = parse_chart_command("curl https://example.com/page extra")
    assert parsed.kind == "curl"
    assert parsed.argument == "https://example.com/page"


def test_parse_curl_requires_url():
    with pytest.raises(ValueError):
        parse_chart_command("curl")


def test_unrecognised_lines_are_not_chart_commands():
    assert parse_chart_command("select * from foo") is None
    assert parse_chart_command("charts") is None
    assert parse_chart_command("Chart type bar") is None
    assert parse_chart_command("curling") is None
    assert parse_chart_command("") is None


def test_subcommands_win_over_bare_chart():
    assert match_prefix("chart type bar") == ("type", "bar")
    assert match_prefix("chart titled") == ("show", "titled")


def test_help_entries_cover_every_command():
    assert set(HELP_ENTRIES) == {"chart", "type", "title", "data", "screenshot", "help", "curl"}
