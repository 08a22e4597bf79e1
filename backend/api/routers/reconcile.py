"""
Reconciliation sessions API router.
"""
from dataclasses import asdict
from io import BytesIO
from typing import Optional
from urllib.parse import quote
import re

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import Response, StreamingResponse

from storeroom.reconcile.adapters import read_rows_from_stream
from storeroom.reconcile.models import (
    InventoryRecord,
    LoadResult,
    ModeError,
    StaleRecordError,
    VerificationMode,
)
from storeroom.reconcile.navigator import FilterSet
from storeroom.reconcile.report import (
    export_csv,
    export_unverified_xlsx,
    export_xlsx,
    generate_report_filename,
)

from backend.api.models import (
    CreateSessionRequest,
    FilterRequest,
    LoadRowsRequest,
    QuantityRequest,
    ScanRequest,
)
from backend.core.config import settings
from backend.core.sessions import SessionEntry, registry

router = APIRouter(prefix="/api/reconcile", tags=["Reconciliation"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def record_to_dict(record: Optional[InventoryRecord]) -> Optional[dict]:
    if record is None:
        return None
    return asdict(record)


def load_result_to_dict(result: LoadResult) -> dict:
    return {
        "success": not result.is_empty,
        "message": result.message,
        "record_count": len(result.records),
        "rows_seen": result.rows_seen,
        "rows_dropped": result.rows_dropped,
        "warnings": [
            {"key": w.key, "kind": w.kind, "positions": list(w.positions)}
            for w in result.warnings
        ],
    }


def session_info(entry: SessionEntry) -> dict:
    session = entry.session
    return {
        "session_id": entry.id,
        "mode": session.mode.value,
        "generation": session.generation.id,
        "source": session.generation.source,
        "record_count": len(session.records),
        "last_scan_status": session.last_scan_status,
        "created_at": entry.created_at,
    }


def _record_or_404(entry: SessionEntry, position: int) -> InventoryRecord:
    try:
        return entry.session.record_at(position)
    except StaleRecordError:
        raise HTTPException(status_code=404, detail="Record not found")


def _not_found():
    return HTTPException(status_code=404, detail="Session not found")


@router.get("/sessions")
def list_sessions():
    """List live reconciliation sessions."""
    sessions = [session_info(e) for e in registry.list()]
    return {"sessions": sessions, "count": len(sessions)}


@router.post("/sessions")
def create_session(request: CreateSessionRequest):
    """Create an empty reconciliation session in count or checklist mode."""
    try:
        mode = VerificationMode(request.mode)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {request.mode}")

    entry = registry.create(mode)
    return {"success": True, "session": session_info(entry)}


@router.get("/sessions/{session_id}")
def get_session(session_id: str):
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        return {"session": session_info(entry)}


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    if not registry.delete(session_id):
        raise _not_found()
    return {"success": True}


# ---- loading --------------------------------------------------------------

@router.post("/sessions/{session_id}/rows")
def load_rows(session_id: str, request: LoadRowsRequest):
    """Replace the session's records with already-parsed rows."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        result = entry.session.load(request.rows, source=request.source)
        return {**load_result_to_dict(result), "generation": entry.session.generation.id}


@router.post("/sessions/{session_id}/upload")
def upload_rows(session_id: str, file: UploadFile = File(...)):
    """Replace the session's records with rows from a CSV / JSON / XLSX upload."""
    content = file.file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        rows = read_rows_from_stream(BytesIO(content), file.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        result = entry.session.load(rows, source=file.filename)
        return {**load_result_to_dict(result), "generation": entry.session.generation.id}


# ---- search ---------------------------------------------------------------

@router.get("/sessions/{session_id}/search")
def search(session_id: str, q: str = Query(..., min_length=1)):
    """Resolve a query (alternate key, primary key, then name) and log it."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        result = entry.session.search(q)
        return {
            "query": result.query,
            "found": result.found,
            "matched_by": result.matched_by.value if result.matched_by else None,
            "record": record_to_dict(result.record),
        }


@router.get("/sessions/{session_id}/suggest")
def suggest(session_id: str, q: str = Query("")):
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        matches = entry.session.suggest(q)
        return {"suggestions": [record_to_dict(r) for r in matches]}


@router.post("/sessions/{session_id}/suggestions/{position}/select")
def select_suggestion(session_id: str, position: int):
    """Log a picked suggestion in the query history."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        record = _record_or_404(entry, position)
        entry.session.select_suggestion(record)
        return {"success": True, "record": record_to_dict(record)}


@router.get("/sessions/{session_id}/history")
def history(session_id: str):
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        return {
            "history": [
                {"query": h.query, "record": record_to_dict(h.record)}
                for h in entry.session.history.entries
            ]
        }


# ---- checklist ------------------------------------------------------------

@router.put("/sessions/{session_id}/filters")
def set_filters(session_id: str, request: FilterRequest):
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        try:
            filters = FilterSet(
                alternate_key=request.alternate_key,
                status=request.status,
                category=request.category,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        entry.session.set_filters(filters)
        return {"success": True, "visible_count": len(entry.session.visible_records())}


@router.get("/sessions/{session_id}/records")
def visible_records(session_id: str):
    """Records passing the active filters, with their verification state."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        session = entry.session
        checklist = session.mode is VerificationMode.CHECKLIST
        items = []
        for record in session.visible_records():
            item = record_to_dict(record)
            if checklist:
                item["verified"] = session.tracker.is_verified(record)
            else:
                item["actual_quantity"] = session.tracker.actual_quantity(record)
            items.append(item)
        return {"records": items, "count": len(items), "facets": session.facets()}


@router.post("/sessions/{session_id}/records/{position}/toggle")
def toggle_record(session_id: str, position: int):
    """Flip a record's verified flag; returns where the sweep continues."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        record = _record_or_404(entry, position)
        try:
            next_record = entry.session.toggle(record)
        except ModeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {
            "verified": entry.session.tracker.is_verified(record),
            "next": record_to_dict(next_record),
        }


@router.get("/sessions/{session_id}/export/unverified")
def export_unverified(session_id: str):
    """Checklist leftovers as XLSX with a total value row."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        if entry.session.mode is not VerificationMode.CHECKLIST:
            raise HTTPException(status_code=400, detail="Unverified export needs a checklist session")
        buffer = BytesIO()
        written = export_unverified_xlsx(entry.session.records, entry.session.tracker, buffer)

    if not written:
        raise HTTPException(status_code=404, detail="All items verified, nothing to export")
    return _xlsx_response(buffer, generate_report_filename("unverified", "xlsx"))


# ---- count ----------------------------------------------------------------

@router.post("/sessions/{session_id}/scan")
def scan(session_id: str, request: ScanRequest):
    """Queue the scanned code(s) and drain them one at a time."""
    codes = ([request.code] if request.code is not None else []) + list(request.codes)
    if not codes:
        raise HTTPException(status_code=400, detail="No code provided")

    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        session = entry.session
        if session.mode is not VerificationMode.COUNT:
            raise HTTPException(status_code=400, detail="Scanning needs a count session")
        for code in codes:
            session.enqueue_scan(code)
        results = session.drain_scans()
        return {
            "results": [
                {
                    "query": r.query,
                    "success": r.success,
                    "message": r.message,
                    "actual_quantity": r.actual_quantity,
                    "record": record_to_dict(r.record),
                }
                for r in results
            ],
            "status": session.last_scan_status,
        }


@router.put("/sessions/{session_id}/records/{position}/quantity")
def set_quantity(session_id: str, position: int, request: QuantityRequest):
    """Manually overwrite the counted quantity (negatives/junk clear it)."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        record = _record_or_404(entry, position)
        try:
            value = entry.session.set_actual_quantity(record, request.value)
        except ModeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "actual_quantity": value}


@router.get("/sessions/{session_id}/summary")
def summary(session_id: str):
    """Dashboard numbers plus the mismatched lines."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        result = entry.session.summary()
        return {
            **result.dashboard(),
            "surplus": result.surplus,
            "deficit": result.deficit,
            "unclassified": result.unclassified,
            "mismatched_items": [
                {
                    "record": record_to_dict(line.record),
                    "actual_quantity": line.actual_quantity,
                    "difference": line.difference,
                    "classification": line.classification.value,
                }
                for line in result.mismatched
            ],
        }


# ---- export ---------------------------------------------------------------

def _xlsx_response(buffer: BytesIO, filename: str) -> StreamingResponse:
    safe_filename = sanitize_filename(filename)

    def iterfile():
        yield buffer.getvalue()

    return StreamingResponse(
        iterfile(),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )


@router.get("/sessions/{session_id}/export")
def export(session_id: str, format: str = Query("xlsx", pattern="^(xlsx|csv)$")):
    """Full result table as XLSX or CSV."""
    with registry.locked(session_id) as entry:
        if entry is None:
            raise _not_found()
        rows = entry.session.export_rows()

    filename = generate_report_filename("reconcile", format)
    if format == "csv":
        filename = sanitize_filename(filename)
        return Response(
            content=export_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
        )

    buffer = BytesIO()
    export_xlsx(rows, buffer)
    return _xlsx_response(buffer, filename)
