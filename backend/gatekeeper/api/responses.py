"""Response classes shared by the API routers."""

from __future__ import annotations

import json
from typing import Any

from fastapi.responses import JSONResponse


class IndentedJSONResponse(JSONResponse):
    """JSON response written with ``indent`` spaces per level (compact when falsy)."""

    indent: int | None = 2

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=self.indent or None,
            separators=None if self.indent else (",", ":"),
        ).encode("utf-8")


def indented_json_response(indent: int | None) -> type[IndentedJSONResponse]:
    """Response class bound to one application's ``JSON_INDENT``."""
    return type("IndentedJSONResponse", (IndentedJSONResponse,), {"indent": indent})
