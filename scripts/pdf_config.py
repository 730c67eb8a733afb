from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pdf_errors import InvalidRequest


class RunConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    log_level: str = Field(default="WARNING")
    archive_compression: Literal["deflated", "stored"] = Field(default="deflated")

    @property
    def zip_compression(self) -> int:
        if self.archive_compression == "stored":
            return zipfile.ZIP_STORED
        return zipfile.ZIP_DEFLATED


class OutlineRequest(BaseModel):
    input_pdf: Path


class SplitRequest(BaseModel):
    input_pdf: Path
    out_dir: Path = Field(default=Path("."))
    # depth is checked by the partitioner so library callers get the same error
    bookmark_level: int = Field(default=1)
    include_metadata: bool = Field(default=False)
    allow_duplicate_pages: bool = Field(default=False)


def parse_model(model: type[BaseModel], data: dict | None) -> BaseModel:
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        raise InvalidRequest(f"invalid {model.__name__}: {e.errors(include_url=False)}") from e


def read_input(path: Path) -> bytes:
    if not path.is_file():
        raise InvalidRequest(f"input pdf not found: {path}")
    data = path.read_bytes()
    if not data:
        raise InvalidRequest(f"input pdf is empty: {path}")
    return data
