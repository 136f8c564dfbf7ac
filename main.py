"""Process entry point — ``python main.py``.

Applies the configured log level, then runs the polling loop until SIGINT
or SIGTERM.  Startup failures (missing token, rejected token, unreachable
API) are logged and end the process with exit status 1.
"""

import asyncio

import config
from bot.dispatcher import run
from core.errors import BotError
from core.logger import QuantaLogger
from sdk.exceptions import APIException


def main() -> None:
    logger = QuantaLogger.configure(config.LOG_LEVEL, file_logging=config.ENVIRONMENT == "production")
    logger.info("bot_starting", extra={"environment": config.ENVIRONMENT})
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    except (BotError, APIException) as exc:
        logger.critical("Failed to start bot", exc_info=exc, extra={"error": str(exc), "error_type": type(exc).__name__})
        raise SystemExit(1) from exc
    finally:
        logger.info("bot_stopped")
        QuantaLogger().cleanup()


if __name__ == "__main__":
    main()
