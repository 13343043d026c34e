"""Unit tests for response rendering and the character ceiling."""

import json

import pytest

from google_sheets_mcp.config import CHARACTER_LIMIT
from google_sheets_mcp.errors import ResponseTooLarge
from google_sheets_mcp.server.formatting import (
    RANGE_HINT,
    RESULTS_HINT,
    enforce_character_limit,
    format_cell_value,
    format_content_matches_markdown,
    format_files_markdown,
    format_info_markdown,
    format_tab_data_markdown,
    format_tabs_markdown,
    info_to_json,
    render_json,
    tab_data_to_json,
)


def _tab_data(values: list[list], range_notation: str = "Sheet1!A1:B2") -> dict:
    return {
        "spreadsheet_id": "abc",
        "range": range_notation,
        "row_count": len(values),
        "column_count": max((len(r) for r in values), default=0),
        "values": values,
    }


@pytest.mark.unit
class TestEnforceCharacterLimit:
    """Tests for enforce_character_limit()."""

    def test_should_accept_text_at_limit(self) -> None:
        """Verify exactly CHARACTER_LIMIT characters pass unchanged."""
        text = "x" * CHARACTER_LIMIT
        assert enforce_character_limit(text) is text

    def test_should_reject_text_over_limit(self) -> None:
        """Verify one character over the limit fails with the size."""
        with pytest.raises(ResponseTooLarge) as exc_info:
            enforce_character_limit("x" * (CHARACTER_LIMIT + 1))

        message = str(exc_info.value)
        assert "25001 > 25000" in message
        assert "'range' parameter" in message

    def test_should_use_custom_hint(self) -> None:
        """Verify search tools get their own remediation text."""
        with pytest.raises(ResponseTooLarge, match="max_results"):
            enforce_character_limit("abcd", hint=RESULTS_HINT, limit=3)

    def test_should_keep_message_on_one_line(self) -> None:
        """Verify the error renders as a single line."""
        with pytest.raises(ResponseTooLarge) as exc_info:
            enforce_character_limit("abcd", hint=RANGE_HINT, limit=3)
        assert "\n" not in str(exc_info.value)


@pytest.mark.unit
class TestFormatCellValue:
    """Tests for format_cell_value()."""

    @pytest.mark.parametrize(
        "value,expected",
        [(None, ""), ("text", "text"), (42, "42"), (1.5, "1.5"), (True, "True")],
    )
    def test_should_render_scalars(self, value, expected: str) -> None:
        """Verify scalar cells render as plain strings."""
        assert format_cell_value(value) == expected

    def test_should_render_nested_values_as_json(self) -> None:
        """Verify structured values stay readable."""
        assert format_cell_value({"a": 1}) == '{"a": 1}'


@pytest.mark.unit
class TestFormatTabDataMarkdown:
    """Tests for format_tab_data_markdown()."""

    def test_should_render_header_and_rows(self) -> None:
        """Verify the first row becomes the header and the rest follow."""
        text = format_tab_data_markdown(_tab_data([["a", "b"], ["c", "d"]]))

        lines = text.splitlines()
        assert lines[0] == "# Data from Sheet1!A1:B2"
        assert "**Rows**: 2 | **Columns**: 2" in lines
        assert "| a | b |" in lines
        assert "| --- | --- |" in lines
        assert "| c | d |" in lines
        assert "more rows not shown" not in text

    def test_should_pad_ragged_rows(self) -> None:
        """Verify short rows are padded to the widest row."""
        text = format_tab_data_markdown(_tab_data([["Name"], ["x", "y", "z"]]))

        assert "| Name | Col2 | Col3 |" in text
        assert "| x | y | z |" in text

    def test_should_pad_short_body_rows(self) -> None:
        """Verify missing trailing cells render empty."""
        text = format_tab_data_markdown(_tab_data([["a", "b", "c"], ["1"]]))
        assert "| 1 |  |  |" in text

    def test_should_escape_pipes_and_newlines(self) -> None:
        """Verify cell text cannot break the table."""
        text = format_tab_data_markdown(_tab_data([["h"], ["a|b\nc"]]))
        assert "| a\\|b c |" in text

    def test_should_cap_rows_and_note_remainder(self) -> None:
        """Verify at most 100 data rows are rendered."""
        values = [["header"]] + [[f"row{i}"] for i in range(1, 151)]

        text = format_tab_data_markdown(_tab_data(values, "Sheet1"))

        assert "| row100 |" in text
        assert "| row101 |" not in text
        assert "*... and 50 more rows not shown." in text
        assert "**Rows**: 151" in text

    def test_should_report_empty_range(self) -> None:
        """Verify an empty result produces a no-data message."""
        assert format_tab_data_markdown(_tab_data([], "Sheet1!Z1:Z5")) == (
            "No data found in range: Sheet1!Z1:Z5"
        )


@pytest.mark.unit
class TestTabDataJson:
    """Tests for tab_data_to_json() and render_json()."""

    def test_should_round_trip_values(self) -> None:
        """Verify JSON output parses back to the same values."""
        data = _tab_data([["a", "b"], ["c", "d"]])

        parsed = json.loads(render_json(tab_data_to_json(data)))

        assert parsed["values"] == [["a", "b"], ["c", "d"]]
        assert parsed["row_count"] == 2
        assert parsed["column_count"] == 2
        assert "message" not in parsed

    def test_should_add_message_when_empty(self) -> None:
        """Verify empty results keep the structure and explain themselves."""
        parsed = tab_data_to_json(_tab_data([], "Sheet1!A1:A2"))

        assert parsed["values"] == []
        assert parsed["message"] == "No data found in range: Sheet1!A1:A2"

    def test_should_keep_unicode(self) -> None:
        """Verify non-ASCII text is not escaped."""
        assert "Zürich" in render_json({"city": "Zürich"})


@pytest.mark.unit
class TestFormatInfo:
    """Tests for spreadsheet info rendering."""

    def _info(self, owner: dict | None) -> dict:
        return {
            "spreadsheet_id": "abc",
            "title": "Budget",
            "locale": "en_US",
            "timezone": "America/New_York",
            "owner": owner,
            "sheets": [
                {"sheet_id": 0, "title": "Summary", "index": 0, "row_count": 1000, "column_count": 26}
            ],
        }

    def test_should_render_owner(self) -> None:
        """Verify owner details are shown when available."""
        text = format_info_markdown(
            self._info({"name": "Ada", "email": "ada@example.com", "created_at": "2024-01-01"})
        )

        assert text.startswith("# Budget")
        assert "**Owner**: Ada (ada@example.com)" in text
        assert "### Summary" in text
        assert "1000 rows × 26 columns" in text

    def test_should_render_owner_placeholder(self) -> None:
        """Verify an inaccessible owner does not fail the call."""
        assert "**Owner**: Not accessible (shared file)" in format_info_markdown(self._info(None))

    def test_should_fill_owner_placeholder_in_json(self) -> None:
        """Verify JSON output always has an owner object."""
        result = info_to_json(self._info(None))

        assert result["owner"] == {
            "name": "Unknown",
            "email": "Not accessible",
            "created_at": "Not accessible",
        }


@pytest.mark.unit
class TestFormatListings:
    """Tests for tab, file and content match rendering."""

    def test_should_number_tabs_from_one(self) -> None:
        """Verify tabs are listed in order with 1-based numbers."""
        text = format_tabs_markdown(
            {
                "spreadsheet_id": "abc",
                "spreadsheet_title": "Budget",
                "tabs": [
                    {"title": "A", "index": 0, "sheet_id": 11},
                    {"title": "B", "index": 1, "sheet_id": 22},
                ],
            }
        )

        assert text.splitlines()[0] == '# Tabs in "Budget"'
        assert "1. **A** (ID: 11)" in text
        assert "2. **B** (ID: 22)" in text
        assert text.index("**A**") < text.index("**B**")

    def test_should_report_no_files(self) -> None:
        """Verify an empty file search says so."""
        text = format_files_markdown({"query": "q4", "file_type": "any", "count": 0, "files": []})
        assert text == 'No files found matching: "q4"'

    def test_should_render_files(self) -> None:
        """Verify file entries carry ID, owner and link."""
        text = format_files_markdown(
            {
                "query": "budget",
                "file_type": "spreadsheet",
                "count": 1,
                "files": [
                    {
                        "id": "file1",
                        "name": "Budget 2024",
                        "owner": "ada@example.com",
                        "created_time": "2024-01-01T00:00:00Z",
                        "modified_time": "2024-02-01T00:00:00Z",
                        "web_view_link": "https://docs.google.com/spreadsheets/d/file1",
                        "mime_type": "application/vnd.google-apps.spreadsheet",
                    }
                ],
            }
        )

        assert text.startswith("Found 1 file(s):")
        assert "1. **Budget 2024**" in text
        assert "   - ID: file1" in text
        assert "   - Owner: ada@example.com" in text

    def test_should_truncate_long_context(self) -> None:
        """Verify row context is cut at 100 characters."""
        text = format_content_matches_markdown(
            {
                "spreadsheet_id": "abc",
                "search_term": "needle",
                "count": 1,
                "matches": [
                    {
                        "sheet": "Data",
                        "row": 3,
                        "column": 2,
                        "cell": "B3",
                        "value": "needle",
                        "context": "y" * 150,
                    }
                ],
            }
        )

        assert "1. **Data** - Row 3, Column 2 (B3)" in text
        assert "   Context: " + "y" * 100 + "..." in text
        assert "y" * 101 not in text

    def test_should_report_no_matches(self) -> None:
        """Verify an empty content search says so."""
        text = format_content_matches_markdown(
            {"spreadsheet_id": "abc", "search_term": "zzz", "count": 0, "matches": []}
        )
        assert text == 'No matches found for "zzz" in this spreadsheet'
