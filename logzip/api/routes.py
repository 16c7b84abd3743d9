import os
from flask import jsonify
from ..config import logs_dir_for
from ..server import app, _dbg

@app.route("/health")
def health():
    base = app.config.get("LOGZIP_BASE")
    logs_dir = logs_dir_for(base, app.config["LOGZIP_LOGS_SUBDIR"])
    available = bool(logs_dir) and os.path.isdir(logs_dir)
    data = {"ok": available, "base": base, "logs_dir": logs_dir, "available": available}
    _dbg("HTTP /health", base=base, logs_dir=logs_dir, available=available)
    return jsonify(data)
