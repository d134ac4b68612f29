import csv

from fastapi import FastAPI, UploadFile, File, HTTPException
from .models import NormalizeResponse, HealthResponse
from .normalize import PipelineError, normalize_csv_bytes

app = FastAPI(
    title="record-normalizer",
    description="Fixed-pipeline CSV record normalization: timestamps, ZIPs, names, durations, text",
    version="0.1.0",
)

@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}

@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_csv(file: UploadFile = File(...)):
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read()
    try:
        return normalize_csv_bytes(raw)
    except PipelineError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except csv.Error as exc:
        raise HTTPException(status_code=422, detail=f"Error reading input CSV: {exc}")
