# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
#!/usr/bin/env python3
import asyncio
import argparse
import logging
import os
from .errors import ConfigError, MqttError
from .core import OpenRgb2Mqtt


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="openrgb2mqtt", exit_on_error=True)
    p.add_argument(
        "-c",
        "--config",
        help="Directory or file path for config.yaml (defaults to /config/config.yaml)",
    )
    return p


def setup_logging() -> None:
    # the config file is read later, so only env vars can shape the log format
    hide_ts = os.getenv("HIDE_TS", "").lower() == "true"
    logging.basicConfig(
        format=(
            "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
            if not hide_ts
            else "[%(levelname)s] %(name)s: %(message)s"
        ),
        datefmt="%Y-%m-%d %H:%M:%S",
        level=logging.DEBUG if os.getenv("DEBUG", "").lower() == "true" else logging.INFO,
    )


async def async_main() -> int:
    setup_logging()
    logger = logging.getLogger(__name__)

    parser = build_parser()
    args = parser.parse_args()

    try:
        async with OpenRgb2Mqtt(args=args) as openrgb2mqtt:
            logger.info(f"starting openrgb2mqtt {openrgb2mqtt.config['version']}")
            logger.info(f"config loaded from {openrgb2mqtt.config['config_from']} ({openrgb2mqtt.config['config_path']})")
            if openrgb2mqtt.config["debug"]:
                logging.getLogger().setLevel(logging.DEBUG)
            await openrgb2mqtt.main_loop()
    except ConfigError as err:
        logger.error(f"Fatal config error was found: {err}")
        return 1
    except MqttError as err:
        logger.error(f"MQTT service problems: {err}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Shutdown requested (Ctrl+C). Exiting gracefully...")
        return 1
    except asyncio.CancelledError:
        logger.warning("Main loop cancelled.")
        return 1
    except Exception as err:
        logger.error(f"Unhandled exception: {err}", exc_info=True)
        return 1
    finally:
        logger.info("openrgb2mqtt stopped.")

    return 0


def main() -> int:
    return asyncio.run(async_main())
