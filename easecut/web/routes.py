"""Job API routes: upload clips, run a retime/stitch job, stream progress."""

import json
import logging
import queue
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
    send_file,
)

from easecut.easing import BEZIER_PRESETS, list_easings
from easecut.engine import resolve_easing
from easecut.errors import EaseCutError, ValidationError
from easecut.manifest import (
    DEFAULT_BITRATE,
    DEFAULT_OUTPUT_DURATION,
    DEFAULT_OUTPUT_FPS,
    DEFAULT_RETIME_EASING,
    DEFAULT_STITCH_EASING,
    EasingSelection,
    RetimeRequest,
    StitchRequest,
)
from easecut.models import BezierCurveSpec
from easecut.retimer import retime
from easecut.stitcher import stitch

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}
# Guards every status check-and-set and every change to a job's clip list
_jobs_lock = threading.Lock()


@bp.route("/api/easings")
def easings():
    return jsonify({
        "easings": list_easings(),
        "presets": {name: list(spec.as_tuple()) for name, spec in BEZIER_PRESETS.items()},
        "default_retime": DEFAULT_RETIME_EASING,
        "default_stitch": DEFAULT_STITCH_EASING,
    })


@bp.route("/api/upload", methods=["POST"])
def upload():
    files = [f for f in request.files.getlist("file") if f.filename]
    if not files:
        return jsonify({"error": "No file provided"}), 400

    job_id = request.form.get("job_id")
    with _jobs_lock:
        if job_id:
            if job_id not in _jobs:
                return jsonify({"error": "Job not found"}), 404
            job = _jobs[job_id]
            if job["status"] == "processing":
                return jsonify({"error": "Job is already processing"}), 409
        else:
            job_id = uuid.uuid4().hex[:12]
            job_dir = Path(current_app.config["WORK_DIR"]) / job_id
            job_dir.mkdir(parents=True, exist_ok=True)
            job = {
                "dir": job_dir,
                "clips": [],
                "filenames": [],
                "status": "uploaded",
            }
            _jobs[job_id] = job

        # saved under the lock so a job cannot start with half its clips
        for f in files:
            ext = Path(f.filename).suffix or ".mp4"
            clip_path = job["dir"] / f"clip_{len(job['clips']):02d}{ext}"
            f.save(clip_path)
            job["clips"].append(clip_path)
            job["filenames"].append(f.filename)
        filenames = list(job["filenames"])

    return jsonify({"job_id": job_id, "filenames": filenames})


def _build_request(job: dict, config: dict) -> RetimeRequest | StitchRequest:
    """One uploaded clip means a retime job, two or more a stitch job."""
    clips = job["clips"]
    output_path = job["dir"] / "output.mp4"
    stitching = len(clips) > 1
    default_easing = DEFAULT_STITCH_EASING if stitching else DEFAULT_RETIME_EASING

    try:
        bezier = config.get("bezier")
        easing = EasingSelection(
            name=str(config.get("easing", default_easing)),
            bezier=BezierCurveSpec.parse(bezier) if bezier else None,
        )
        duration = float(config.get("duration", DEFAULT_OUTPUT_DURATION))
        fps = int(config.get("output_fps", DEFAULT_OUTPUT_FPS))
        bitrate = str(config.get("bitrate", DEFAULT_BITRATE))
        max_clips = config.get("max_clips")
        max_clips = int(max_clips) if max_clips is not None else None
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid parameter: {e}") from None

    if stitching:
        return StitchRequest(
            clips=list(clips),
            output=output_path,
            clip_duration=duration,
            output_fps=fps,
            easing=easing,
            bitrate=bitrate,
            max_clips=max_clips,
        )
    return RetimeRequest(
        input=clips[0],
        output=output_path,
        output_duration=duration,
        output_fps=fps,
        easing=easing,
        bitrate=bitrate,
    )


@bp.route("/api/jobs/<job_id>/process", methods=["POST"])
def start_process(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    config = request.get_json(silent=True) or {}
    progress_queue: queue.Queue = queue.Queue()

    with _jobs_lock:
        if job["status"] not in ("uploaded", "done", "error"):
            return jsonify({"error": f"Job is already {job['status']}"}), 409
        try:
            job_request = _build_request(job, config)
            job_request.validate()
            resolve_easing(job_request.easing)
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

        job["progress_queue"] = progress_queue
        job["status"] = "processing"
        job["error"] = None

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            if isinstance(job_request, StitchRequest):
                result = stitch(job_request, on_progress=on_progress)
            else:
                result = retime(job_request, on_progress=on_progress)
            job["result"] = {
                "output_path": str(result.output_path),
                "frame_count": result.frame_count,
                "duration": result.duration,
                "clip_count": result.clip_count,
                "compression_ratios": result.compression_ratios,
            }
            job["status"] = "done"
        except EaseCutError as e:
            job["status"] = "error"
            job["error"] = str(e)
        except Exception as e:
            logger.exception("Job %s crashed", job_id)
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started", "mode": "stitch" if len(job["clips"]) > 1 else "retime"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job.get("progress_queue")

    if q is None:
        return jsonify({"error": "No processing in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, mimetype="video/mp4", as_attachment=False)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {
        "status": job["status"],
        "filenames": job.get("filenames", []),
        "clip_count": len(job.get("clips", [])),
    }
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
