import functools

from loguru import logger

from src.config.settings_env import settings
from src.domain.errors import SerializationFailure


def transactional(method):
    """Run a service method inside ``self.uow`` and commit on success.

    A ``SerializationFailure`` aborts the attempt and the whole method is
    re-run on a fresh transaction, up to ``TRANSACTION_MAX_RETRIES`` times.
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        attempts = max(1, settings.TRANSACTION_MAX_RETRIES)
        for attempt in range(1, attempts + 1):
            try:
                async with self.uow:
                    result = await method(self, *args, **kwargs)
                    await self.uow.commit()
                return result
            except SerializationFailure:
                if attempt == attempts:
                    logger.error(f"{method.__qualname__} gave up after {attempts} attempts")
                    raise
                logger.warning(f"{method.__qualname__} hit a concurrent writer, retrying ({attempt}/{attempts})")

    return wrapper
