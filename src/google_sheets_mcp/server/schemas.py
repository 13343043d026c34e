"""Input models for the five MCP tools.

Each tool's ``inputSchema`` is generated from its model, and every call is
validated against the same model before any credential or network work.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from google_sheets_mcp.config import MAX_SEARCH_FILES

ResponseFormat = Literal["markdown", "json"]
FileType = Literal["any", "spreadsheet", "document"]

RESPONSE_FORMAT_DESCRIPTION = (
    "Output format: 'markdown' for human-readable or 'json' for machine-readable"
)


class ToolRequest(BaseModel):
    """Fields shared by every tool request."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    response_format: ResponseFormat = Field(
        default="markdown", description=RESPONSE_FORMAT_DESCRIPTION
    )


class GetInfoRequest(ToolRequest):
    url: str = Field(
        ...,
        min_length=1,
        description="Google Sheets URL (e.g., https://docs.google.com/spreadsheets/d/SPREADSHEET_ID/edit)",
    )


class ListTabsRequest(ToolRequest):
    url: str = Field(..., min_length=1, description="Google Sheets URL")


class GetTabDataRequest(ToolRequest):
    url: str = Field(..., min_length=1, description="Google Sheets URL")
    tab_name: str = Field(
        ...,
        min_length=1,
        description="Name of the tab/sheet to read (e.g., 'Sheet1', 'Data')",
    )
    range: str | None = Field(
        default=None,
        description=(
            "Optional range in A1 notation (e.g., 'A1:D10'). "
            "If not specified, reads entire sheet"
        ),
    )


class SearchFilesRequest(ToolRequest):
    query: str = Field(
        ..., min_length=1, description="Search query matched against file names"
    )
    file_type: FileType = Field(default="any", description="Type of files to search for")
    max_results: int = Field(
        default=10,
        ge=1,
        le=MAX_SEARCH_FILES,
        description=f"Maximum number of results to return (1-{MAX_SEARCH_FILES})",
    )


class SearchContentRequest(ToolRequest):
    spreadsheet_id: str = Field(
        ...,
        min_length=1,
        description=(
            "Spreadsheet ID to search in (or its full URL). "
            "Get it from google_drive_search_files"
        ),
    )
    search_term: str = Field(
        ..., min_length=1, description="Text to search for in spreadsheet contents"
    )
    max_results: int = Field(
        default=5, ge=1, le=100, description="Maximum number of matching rows to return"
    )


def input_schema(model: type[ToolRequest]) -> dict:
    """JSON schema for a tool's ``inputSchema``, without pydantic's title noise."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


def describe_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic ValidationError into one line.

    Example:
        ``url: String should have at least 1 character; max_results: ...``
    """
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "input"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
