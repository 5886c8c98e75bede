"""
VitalTrack API Server
======================
FastAPI server: simulation loop, WebSocket hub and REST endpoints.

Usage:
    vitaltrack                          # Default: 8-patient demo ward
    vitaltrack --patients 12            # Bigger ward
    vitaltrack --flush 10               # Flush the write buffer every 10s
    vitaltrack --log-dir ./data_logs    # Mirror persisted records to JSONL
    vitaltrack --seed 42                # Reproducible simulation

WebSocket protocol (/ws):
    client -> {"action": "join",  "id": 3}   subscribe to patient 3 waveforms
    client -> {"action": "leave", "id": 3}
    server -> {"type": "waveform-update",  "data": {...}}
    server -> {"type": "dashboard-update", "data": {...}}
"""

import os
import json
import asyncio
import argparse
import logging
import random

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from vitaltrack.api.fanout import FanOut
from vitaltrack.api.routes import router, set_app_state
from vitaltrack.api.ws_handler import ConnectionManager
from vitaltrack.config import settings
from vitaltrack.simulation.scheduler import VitalScheduler
from vitaltrack.storage.file_logger import FileLogger
from vitaltrack.storage.record_store import RecordStore
from vitaltrack.storage.write_buffer import BufferFlusher, WriteBehindBuffer
from vitaltrack.synthetic.patient_factory import generate_ward

logger = logging.getLogger("Server")

# --- App setup ---
app = FastAPI(title="VitalTrack API", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(router, prefix="/api")

ws_manager = ConnectionManager()
app_state = {
    "store": None, "buffer": None, "flusher": None, "file_logger": None,
    "scheduler": None, "task": None, "ws_manager": ws_manager,
}
set_app_state(app_state)


async def handle_client_message(websocket: WebSocket, text: str):
    """Apply one join/leave request. Bad messages are logged and ignored."""
    try:
        msg = json.loads(text)
    except json.JSONDecodeError:
        logger.debug(f"Ignoring non-JSON message: {text[:80]!r}")
        return
    if not isinstance(msg, dict):
        return
    action = msg.get("action")
    if action == "join":
        ws_manager.join(websocket, msg.get("id"))
    elif action == "leave":
        ws_manager.leave(websocket, msg.get("id"))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await ws_manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            await handle_client_message(websocket, data)
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)


def build_components(n_patients: int = settings.WARD_SIZE,
                     flush_sec: float = settings.DB_FLUSH_INTERVAL_SEC,
                     log_dir: str = settings.FILE_LOG_DIR,
                     seed=None) -> dict:
    """Wire store, buffer, flusher and scheduler around the shared hub."""
    rng = random.Random(seed)
    file_logger = FileLogger(log_dir=log_dir) if log_dir else None
    store = RecordStore(file_logger=file_logger)
    for patient in generate_ward(n_patients, rng=rng):
        store.add_patient(patient)

    buffer = WriteBehindBuffer()
    flusher = BufferFlusher(buffer, store, interval_sec=flush_sec)
    scheduler = VitalScheduler(store, FanOut(ws_manager), buffer, rng=rng)
    return {
        "store": store, "buffer": buffer, "flusher": flusher,
        "file_logger": file_logger, "scheduler": scheduler,
    }


@app.on_event("startup")
async def startup():
    seed = os.environ.get("VITALTRACK_SEED", "")
    components = build_components(
        n_patients=int(os.environ.get("VITALTRACK_WARD_SIZE", settings.WARD_SIZE)),
        flush_sec=float(os.environ.get("VITALTRACK_FLUSH_SEC", settings.DB_FLUSH_INTERVAL_SEC)),
        log_dir=os.environ.get("VITALTRACK_LOG_DIR", settings.FILE_LOG_DIR),
        seed=int(seed) if seed else None,
    )
    app_state.update(components)

    if components["file_logger"]:
        components["file_logger"].start()
    components["flusher"].start()
    app_state["task"] = asyncio.create_task(components["scheduler"].run())
    logger.info(f"Monitoring {len(components['store'].patients)} patients")


@app.on_event("shutdown")
async def shutdown():
    scheduler = app_state.get("scheduler")
    task = app_state.get("task")
    if scheduler:
        scheduler.stop()
    if task:
        try:
            await asyncio.wait_for(task, timeout=2)
        except asyncio.TimeoutError:
            task.cancel()
    if app_state.get("flusher"):
        app_state["flusher"].stop(final_flush=True)
    if app_state.get("file_logger"):
        app_state["file_logger"].stop()


def main():
    import uvicorn
    parser = argparse.ArgumentParser(description="VitalTrack API Server")
    parser.add_argument("--host", default=settings.API_HOST)
    parser.add_argument("--port", type=int, default=settings.API_PORT)
    parser.add_argument("--patients", type=int, default=settings.WARD_SIZE, help="Demo ward size")
    parser.add_argument("--flush", type=float, default=settings.DB_FLUSH_INTERVAL_SEC,
                        help="Write-buffer flush interval (seconds)")
    parser.add_argument("--log-dir", default=settings.FILE_LOG_DIR, help="JSONL mirror directory")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    os.environ["VITALTRACK_WARD_SIZE"] = str(args.patients)
    os.environ["VITALTRACK_FLUSH_SEC"] = str(args.flush)
    os.environ["VITALTRACK_LOG_DIR"] = args.log_dir
    if args.seed is not None:
        os.environ["VITALTRACK_SEED"] = str(args.seed)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print(f"[VitalTrack] API:       http://localhost:{args.port}/api/dashboard/patients")
    print(f"[VitalTrack] WebSocket: ws://localhost:{args.port}/ws")
    print(f"[VitalTrack] Ward: {args.patients} patients | flush every {args.flush:.0f}s")
    if args.log_dir:
        print(f"[VitalTrack] JSONL mirror: {os.path.abspath(args.log_dir)}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    main()
