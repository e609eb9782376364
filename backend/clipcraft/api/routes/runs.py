"""Clip generation runs: upload, progress stream, clip management and export."""

import json
import shutil
from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response, StreamingResponse
from pydantic import ValidationError

from ...errors import ClipCraftError, CredentialError, InputValidationError
from ...models import ProcessingConfig, ProcessingStatus
from ...services import ClipGenerationService, ExportService, Run, WorkspaceService
from ...services.clip_generation import video_topic

router = APIRouter(prefix="/runs", tags=["runs"])


UPLOAD_CHUNK_SIZE = 1024 * 1024


def get_clip_generation_service() -> ClipGenerationService:
    return ClipGenerationService()


def get_export_service() -> ExportService:
    return ExportService()


async def _write_upload_to_path(upload: UploadFile, destination: Path) -> None:
    """Stream uploaded file to disk in chunks."""
    with destination.open("wb") as out:
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)


def _load_run(run_id: str) -> Run:
    run = WorkspaceService.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


def _http_error(exc: ClipCraftError) -> HTTPException:
    if isinstance(exc, CredentialError):
        status_code = 401
    elif isinstance(exc, InputValidationError):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail={"message": str(exc), "kind": exc.kind})


def _upload_suffix(upload: UploadFile, default: str) -> str:
    return Path(upload.filename or "").suffix.lower() or default


def _attachment(filename: str) -> str:
    """Content-Disposition value; non-ASCII names go in the RFC 5987 filename* form."""
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    fallback = f"clip{Path(filename).suffix}"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post("")
async def create_run(
    video: UploadFile = File(...),
    config: str = Form("{}"),
    watermark: UploadFile | None = File(None),
    music: UploadFile | None = File(None),
    service: ClipGenerationService = Depends(get_clip_generation_service),
):
    """Upload a video with its processing config and start generating clips."""
    try:
        raw_config = json.loads(config)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Config must be a JSON object")
    if not isinstance(raw_config, dict):
        raise HTTPException(status_code=400, detail="Config must be a JSON object")

    run_id = WorkspaceService.new_run_id()
    run_dir = WorkspaceService.get_run_dir(run_id)
    run_dir.mkdir(parents=True, exist_ok=True)

    video_path = run_dir / f"source{_upload_suffix(video, '.mp4')}"
    await _write_upload_to_path(video, video_path)
    if watermark is not None:
        watermark_path = run_dir / f"watermark{_upload_suffix(watermark, '.png')}"
        await _write_upload_to_path(watermark, watermark_path)
        raw_config["watermark_path"] = str(watermark_path)
    if music is not None:
        music_path = run_dir / f"music{_upload_suffix(music, '.mp3')}"
        await _write_upload_to_path(music, music_path)
        raw_config["background_music_path"] = str(music_path)

    try:
        processing_config = ProcessingConfig.model_validate(raw_config)
    except ValidationError as exc:
        shutil.rmtree(run_dir, ignore_errors=True)
        raise HTTPException(status_code=422, detail=json.loads(exc.json(include_url=False)))

    run = WorkspaceService.register(
        run_id,
        video_path=video_path,
        config=processing_config,
        topic=video_topic(video.filename or "video"),
    )
    WorkspaceService.start(run, service)
    return {"run_id": run.id}


@router.get("/{run_id}/events")
async def stream_run_events(run_id: str):
    """Stream the run's progress events (past ones are replayed first)."""
    run = _load_run(run_id)

    async def stream_progress():
        async for progress in run.follow():
            yield f"data: {json.dumps(progress.model_dump(mode='json'))}\n\n"

    return StreamingResponse(
        stream_progress(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.get("/{run_id}/clips")
async def list_clips(run_id: str):
    run = _load_run(run_id)
    return {
        "status": run.status.value,
        "clips": [clip.model_dump(mode="json") for clip in run.clips],
    }


@router.delete("/{run_id}/clips/{clip_id}")
async def delete_clip(run_id: str, clip_id: str):
    """Remove a clip from the run; it will not be part of later exports."""
    _load_run(run_id)
    if not WorkspaceService.remove_clip(run_id, clip_id):
        raise HTTPException(status_code=404, detail="Clip not found")
    return {"status": "deleted", "clip_id": clip_id}


@router.get("/{run_id}/clips/{clip_id}/export")
async def export_clip(
    run_id: str,
    clip_id: str,
    exporter: ExportService = Depends(get_export_service),
):
    """Render one clip and return the MP4."""
    run = _load_run(run_id)
    found = run.find_clip(clip_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Clip not found")
    index, clip = found

    try:
        content = await exporter.export_clip(run.video_path, clip, run.config)
    except ClipCraftError as exc:
        raise _http_error(exc)

    filename = ExportService.clip_filename(index, clip)
    return Response(
        content=content,
        media_type="video/mp4",
        headers={"Content-Disposition": _attachment(filename)},
    )


@router.get("/{run_id}/export")
async def export_all(
    run_id: str,
    exporter: ExportService = Depends(get_export_service),
):
    """Render every remaining clip, in display order, into one zip archive."""
    run = _load_run(run_id)
    if run.status is not ProcessingStatus.DONE:
        raise HTTPException(status_code=409, detail="Clip generation has not finished")
    if not run.clips:
        raise HTTPException(status_code=400, detail="No clips to export")

    try:
        archive = await exporter.export_batch(run.video_path, run.clips, run.config)
    except ClipCraftError as exc:
        raise _http_error(exc)

    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="clipcraft_{run.id}.zip"'},
    )
