"""Rendering of gateway results as JSON or markdown text.

Every renderer produces the full text first; :func:`enforce_character_limit`
is then applied by the dispatcher. Oversized output is rejected as a whole
rather than cut, so callers never receive partial data.
"""

import json
from typing import Any

from google_sheets_mcp.config import CHARACTER_LIMIT, MAX_MARKDOWN_ROWS
from google_sheets_mcp.errors import ResponseTooLarge

RANGE_HINT = "Try specifying a smaller range using the 'range' parameter (e.g., 'A1:Z100')."
RESULTS_HINT = "Try lowering 'max_results' or using a more specific search."
INFO_HINT = "Use google_sheets_list_tabs or google_sheets_get_tab_data for a narrower request."

CONTEXT_PREVIEW_CHARS = 100


def render_json(result: dict[str, Any]) -> str:
    """Serialize a result with stable key order and no dropped fields."""
    return json.dumps(result, indent=2, ensure_ascii=False)


def enforce_character_limit(text: str, hint: str = RANGE_HINT, limit: int = CHARACTER_LIMIT) -> str:
    """Return text unchanged if it fits, otherwise fail.

    Args:
        text: Fully rendered response.
        hint: Remediation appended to the error message.
        limit: Maximum number of characters allowed.

    Raises:
        ResponseTooLarge: If ``len(text) > limit``.
    """
    if len(text) > limit:
        raise ResponseTooLarge(len(text), limit, hint)
    return text


def format_cell_value(value: Any) -> str:
    """Render one cell for display."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _table_cell(value: Any) -> str:
    # Keep each cell on one table row
    return format_cell_value(value).replace("|", "\\|").replace("\r\n", " ").replace("\n", " ")


def format_info_markdown(info: dict[str, Any]) -> str:
    """Render spreadsheet metadata."""
    lines = [
        f"# {info['title']}",
        "",
        f"**Spreadsheet ID**: {info['spreadsheet_id']}",
        f"**Locale**: {info['locale']}",
        f"**Timezone**: {info['timezone']}",
    ]

    owner = info.get("owner")
    if owner:
        lines.append(f"**Owner**: {owner['name']} ({owner['email']})")
        lines.append(f"**Created**: {owner['created_at']}")
    else:
        lines.append("**Owner**: Not accessible (shared file)")

    lines.extend(["", "## Sheets", ""])

    if not info["sheets"]:
        lines.append("No sheets found.")
    for sheet in info["sheets"]:
        lines.extend(
            [
                f"### {sheet['title']}",
                f"- **Sheet ID**: {sheet['sheet_id']}",
                f"- **Index**: {sheet['index']}",
                f"- **Size**: {sheet['row_count']} rows × {sheet['column_count']} columns",
                "",
            ]
        )

    return "\n".join(lines).rstrip("\n")


def info_to_json(info: dict[str, Any]) -> dict[str, Any]:
    """Fill the owner placeholder used when the Drive lookup failed."""
    result = dict(info)
    if result.get("owner") is None:
        result["owner"] = {
            "name": "Unknown",
            "email": "Not accessible",
            "created_at": "Not accessible",
        }
    return result


def format_tabs_markdown(listing: dict[str, Any]) -> str:
    """Render the ordered tab list."""
    lines = [f'# Tabs in "{listing["spreadsheet_title"]}"', ""]
    if not listing["tabs"]:
        lines.append("No tabs found.")
    for tab in listing["tabs"]:
        lines.append(f"{tab['index'] + 1}. **{tab['title']}** (ID: {tab['sheet_id']})")
    return "\n".join(lines)


def no_data_message(data: dict[str, Any]) -> str:
    return f"No data found in range: {data['range']}"


def format_tab_data_markdown(data: dict[str, Any], max_rows: int = MAX_MARKDOWN_ROWS) -> str:
    """Render cell values as a markdown table.

    The first row becomes the table header; up to ``max_rows`` further rows
    follow, padded to the widest row.
    """
    values = data["values"]
    if not values:
        return no_data_message(data)

    column_count = data["column_count"]
    lines = [
        f"# Data from {data['range']}",
        "",
        f"**Rows**: {data['row_count']} | **Columns**: {column_count}",
        "",
    ]

    header_row = list(values[0]) + [""] * (column_count - len(values[0]))
    headers = [_table_cell(cell) or f"Col{idx + 1}" for idx, cell in enumerate(header_row)]
    lines.append("| " + " | ".join(headers) + " |")
    lines.append("| " + " | ".join("---" for _ in headers) + " |")

    body = values[1 : max_rows + 1]
    for row in body:
        cells = [_table_cell(row[j]) if j < len(row) else "" for j in range(column_count)]
        lines.append("| " + " | ".join(cells) + " |")

    omitted = len(values) - 1 - len(body)
    if omitted > 0:
        lines.append("")
        lines.append(
            f"*... and {omitted} more rows not shown. Use 'response_format: json' "
            "or specify a smaller range for complete data.*"
        )

    return "\n".join(lines)


def tab_data_to_json(data: dict[str, Any]) -> dict[str, Any]:
    if data["values"]:
        return data
    return {**data, "message": no_data_message(data)}


def format_files_markdown(search: dict[str, Any]) -> str:
    """Render a Drive file search."""
    files = search["files"]
    if not files:
        return f'No files found matching: "{search["query"]}"'

    entries = []
    for i, f in enumerate(files, start=1):
        entries.append(
            f"{i}. **{f['name']}**\n"
            f"   - ID: {f['id']}\n"
            f"   - Owner: {f['owner']}\n"
            f"   - Created: {f['created_time']}\n"
            f"   - Modified: {f['modified_time']}\n"
            f"   - Link: {f['web_view_link']}"
        )
    return f"Found {len(files)} file(s):\n\n" + "\n\n".join(entries)


def format_content_matches_markdown(search: dict[str, Any]) -> str:
    """Render content search matches, one entry per matching row."""
    matches = search["matches"]
    if not matches:
        return f'No matches found for "{search["search_term"]}" in this spreadsheet'

    entries = []
    for i, m in enumerate(matches, start=1):
        context = m["context"]
        if len(context) > CONTEXT_PREVIEW_CHARS:
            context = context[:CONTEXT_PREVIEW_CHARS] + "..."
        entries.append(
            f"{i}. **{m['sheet']}** - Row {m['row']}, Column {m['column']} ({m['cell']})\n"
            f"   Value: {format_cell_value(m['value'])}\n"
            f"   Context: {context}"
        )
    return f"Found {len(matches)} matching row(s):\n\n" + "\n\n".join(entries)
