from flask import Response, request
from ..config import resolve_logs_dir
from ..errors import ConfigurationMissing
from ..handler import stream_logs_archive
from ..server import app, log, _ok, _err

ARCHIVE_NAME = "logs.zip"

@app.route("/", methods=["GET"])
def download_logs():
    """
    Stream every regular file under <base>/logs as one zip, paths relative to logs/.
    Response: application/octet-stream attachment (logs.zip), or 500 + text body
    when the base/logs directory isn't configured. Nothing is read in that case.
    """
    _ok("LOGFILES REQUESTED", remote=request.remote_addr)
    try:
        logs_dir = resolve_logs_dir(app.config.get("LOGZIP_BASE"), app.config["LOGZIP_LOGS_SUBDIR"])
    except ConfigurationMissing as e:
        _err("LOGFILES UNAVAILABLE", base=app.config.get("LOGZIP_BASE"), error=e)
        return Response(str(e), status=500, mimetype="text/plain")

    body = stream_logs_archive(logs_dir, temp_dir=app.config.get("LOGZIP_TEMP_DIR"), logger=log)
    resp = Response(body, mimetype="application/octet-stream")
    resp.headers["Content-Disposition"] = f"attachment; filename={ARCHIVE_NAME}"
    return resp
