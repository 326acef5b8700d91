from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
import logging
import uuid
import asyncio
import json

from locuta.core.exceptions import AudioInitError, PlaybackError
from locuta.schemas.protocol import (
    EndSessionPayload,
    ErrorResponse,
    MetricsResponse,
    PlaybackPayload,
    PlaybackStatusResponse,
    ReportResponse,
    StreamPayload,
    TranscriptPayload,
)
from locuta.services.analyzers.transcript import analyze_transcript
from locuta.services.session_manager import manager, Session

logger = logging.getLogger(__name__)
router = APIRouter()


async def flush_metrics(session: Session, websocket: WebSocket):
    """Forward every snapshot published since the last flush."""
    while not session.outbox.empty():
        metrics = session.outbox.get_nowait()
        await websocket.send_text(MetricsResponse(metrics=metrics).model_dump_json(by_alias=True))


async def send_final_report(session: Session, websocket: WebSocket):
    await flush_metrics(session, websocket)
    final = session.finish()
    report = ReportResponse(metrics=final, transcript=session.transcript)
    await websocket.send_text(report.model_dump_json(by_alias=True))
    logger.info(f"Report sent (delivery={final.delivery_score}, confidence={final.confidence_score})")


async def send_playback_state(session: Session, websocket: WebSocket):
    playback = session.playback
    status = PlaybackStatusResponse(
        state=playback.state.value,
        segment=playback.segment.value,
        current_time=playback.current_time,
        duration=playback.duration,
    )
    await websocket.send_text(status.model_dump_json())


async def send_error(websocket: WebSocket, detail: str):
    await websocket.send_text(ErrorResponse(detail=detail).model_dump_json())


@router.websocket("/ws/voice")
async def voice_websocket_endpoint(websocket: WebSocket):
    session_id = str(uuid.uuid4())
    session = await manager.connect(session_id, websocket)

    try:
        session.start()
    except AudioInitError as e:
        await send_error(websocket, f"Audio analysis unavailable: {e}")
        manager.disconnect(session_id)
        await websocket.close()
        return

    try:
        while True:
            data = None
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=0.05)
            except asyncio.TimeoutError:
                pass

            if data:
                try:
                    raw = json.loads(data)
                    if not isinstance(raw, dict):
                        raise TypeError(f"Expected a JSON object, got {type(raw).__name__}")
                    message_type = raw.get("type")

                    if message_type == "end_session":
                        EndSessionPayload.model_validate(raw)
                        logger.info("End session requested")
                        await send_final_report(session, websocket)
                        session.reset()
                        continue

                    if message_type == "transcript":
                        payload = TranscriptPayload.model_validate(raw)
                        session.transcript = analyze_transcript(
                            payload.text, payload.duration_seconds, payload.lesson_number
                        )
                        logger.info(f"Transcript attached ({session.transcript.word_count} words)")
                        continue

                    if message_type == "playback":
                        command = PlaybackPayload.model_validate(raw)
                        session.control_playback(command)
                        await send_playback_state(session, websocket)
                        continue

                    payload = StreamPayload.model_validate(raw)
                    await run_in_threadpool(session.source.push_encoded, payload.audio_chunk)

                except ValidationError as e:
                    logger.error(f"Validation error: {e}")
                    await send_error(websocket, "Invalid message")
                except (AttributeError, TypeError) as e:
                    logger.error(f"Malformed message: {e}")
                    await send_error(websocket, "Invalid message")
                except PlaybackError as e:
                    logger.warning(f"Playback command rejected: {e}")
                    await send_error(websocket, str(e))
                except json.JSONDecodeError:
                    logger.error("Received non-JSON message")
                    await send_error(websocket, "Messages must be JSON")

            await flush_metrics(session, websocket)

    except WebSocketDisconnect:
        logger.info("Disconnected")
    except Exception as e:
        logger.error(f"Error: {e}")
    finally:
        manager.disconnect(session_id)
