from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field


class NormalizedCsv(BaseModel):
    sha256: str
    encoding: str = Field(default="utf-8")
    content_b64: str


class ReportSummary(BaseModel):
    rows: int = 0
    columns: int = 0
    warnings: int = 0
    errors: int = 0
    deterministic: bool = True


class EncodingReport(BaseModel):
    detected: Optional[str] = Field(default=None, examples=["utf_8"])
    decode_used: str = "utf-8"
    bom_stripped: bool = False
    output: str = "utf-8"
    notes: Optional[str] = None


class PipelineReport(BaseModel):
    stages: List[str]
    source_timezone: str = Field(examples=["America/Los_Angeles"])
    target_timezone: str = Field(examples=["America/New_York"])
    required_columns: List[str]


class Normalizations(BaseModel):
    encoding: EncodingReport
    pipeline: PipelineReport


class ReportItem(BaseModel):
    row: Optional[int] = Field(default=None, examples=[4])
    column: Optional[str] = Field(default=None, examples=["ZIP"])
    issue: str = Field(examples=["invalid_zip"])
    value: Optional[str] = None
    action: str = Field(examples=["kept_original"])


class NormalizationReport(BaseModel):
    summary: ReportSummary
    normalizations: Normalizations
    warnings: List[ReportItem] = Field(default_factory=list)
    errors: List[ReportItem] = Field(default_factory=list)


class NormalizeResponse(BaseModel):
    normalized_csv: NormalizedCsv
    report: NormalizationReport

class HealthResponse(BaseModel):
    ok: bool = True
