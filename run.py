from logzip.logging_utils import init_logging
init_logging()  # colored console logs; quiet noisy frameworks by default

from logzip.server import app

if __name__ == "__main__":
    import asyncio
    from hypercorn.config import Config
    from hypercorn.asyncio import serve
    from hypercorn.middleware import AsyncioWSGIMiddleware

    cfg = Config()
    cfg.bind = [app.config["LOGZIP_BIND"]]
    cfg.accesslog = "-"  # log to stdout

    print(f"✅ Starting logzip server on {cfg.bind[0]} (logs under {app.config['LOGZIP_BASE']})")
    # Flask is WSGI; Hypercorn runs it in a worker thread and streams the body as produced.
    asyncio.run(serve(AsyncioWSGIMiddleware(app), cfg))
