# Liveness endpoint for hosting platforms that probe an HTTP port.
# Answers 200 "OK" to any method on any path.

from aiohttp import web

import services.logger as log

l = log.get_logger()


async def _handle_any(request: web.Request) -> web.Response:
    return web.Response(status=200, text="OK")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", _handle_any)
    return app


async def start_health_server(port: int, host: str = "0.0.0.0") -> web.AppRunner:
    """Start serving on *host*:*port*; the caller owns ``runner.cleanup()``."""
    runner = web.AppRunner(make_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    l.info(f"[Health] Listening on {host}:{port}")
    return runner
