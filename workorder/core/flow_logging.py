import logging

from workorder.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "edit_session":
        return settings.FLOW_LOGS_EDIT_SESSION_ENABLED
    if category == "gateway":
        return settings.FLOW_LOGS_GATEWAY_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
