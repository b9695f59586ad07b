import argparse
import asyncio
import sys

from dotenv import load_dotenv

import services.error  # installs global uncaught-exception hook
import services.logger as log
import services.config as config
from services import media
from services.bridge import MirrorBridge
from services.config_schema import MirrorConfig
from services.error import ConfigError, install_loop_handler
from services.health import start_health_server
from services.ledger import MirrorLedger
from drivers.discord import DiscordBus

l = log.get_logger()


async def main(cfg: MirrorConfig):
    install_loop_handler()

    l.info("Image mirror starting…")
    l.info(
        f"Mirroring {len(cfg.source_channels)} source channel(s) "
        f"into {cfg.target_channel}"
    )
    if not cfg.source_channels:
        l.warning("SOURCE_CHANNELS is empty, nothing will be mirrored")

    bus = DiscordBus(cfg.discord_token)
    bridge = MirrorBridge(cfg, bus, MirrorLedger())
    bus.attach(bridge)

    runner = await start_health_server(cfg.health_port)

    try:
        await bus.start()
    except asyncio.CancelledError:
        l.info("Image mirror shutting down…")
        raise
    finally:
        await bus.close()
        await media.close()
        await runner.cleanup()
        l.info("Image mirror stopped.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        prog="image-mirror",
        description="Mirror images from Discord source channels into one target channel",
    )
    parser.add_argument("--env", default=".env", help="Path to a .env file (default: .env)")
    args = parser.parse_args()

    load_dotenv(args.env)

    try:
        cfg = config.load()
    except ConfigError as e:
        l.critical(str(e))
        sys.exit(1)

    log.register_sensitive(frozenset({cfg.discord_token}))
    log.set_console_level(cfg.log_level)

    try:
        asyncio.run(main(cfg))
    except KeyboardInterrupt:
        pass
