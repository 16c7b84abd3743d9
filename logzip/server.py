# logzip/server.py
from flask import Flask
from flask_cors import CORS

from .config import load_settings
from .logging_utils import get_logger, block
from .logging_utils import init_logging
init_logging()

# -----------------------------------------------------------------------------
# App setup
# -----------------------------------------------------------------------------
app = Flask(__name__, static_folder=None)
CORS(app, resources={r"/*": {"origins": "*"}}, expose_headers=["Content-Disposition"])
app.config.update(load_settings())

log = get_logger("logzip.server")

# -----------------------------------------------------------------------------
# Helpers (imported by api modules)
# -----------------------------------------------------------------------------
def _ok(title: str, **fields):
    log.info("\n" + block(title, **fields))

def _dbg(title: str, **fields):
    log.debug("\n" + block(title, **fields))

def _err(title: str, **fields):
    log.error("\n" + block(title, **fields))

# -----------------------------------------------------------------------------
# Wire up API routes
# -----------------------------------------------------------------------------
from .api import routes as _api_routes            # noqa: F401,E402
from .api import zip_routes as _zip_routes        # noqa: F401,E402
