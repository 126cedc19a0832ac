"""Root error sink.

Partitions dispatch ``Page.report_error`` with any failure they do not
translate into a typed result.  The view layer reads ``Page.page_error``
to show it.
"""

from __future__ import annotations

import logging
from typing import Any

from pypaysuper.models.page_error import PageError
from pypaysuper.store.partition import ActionContext, Partition, PartitionState, action, getter, mutation

_logger = logging.getLogger(__name__)


class PagePartition(Partition):
    namespace = "Page"

    def initial_state(self) -> dict[str, Any]:
        return {"page_error": None}

    @mutation
    def set_page_error(self, state: PartitionState, value: PageError | None) -> None:
        state["page_error"] = value

    @getter
    def page_error(self, state: Any) -> PageError | None:
        return state["page_error"]

    @getter
    def page_error_message(self, state: Any) -> str | None:
        error = state["page_error"]
        return error.message if error is not None else None

    @getter
    def has_page_error(self, state: Any) -> bool:
        return state["page_error"] is not None

    @action
    async def report_error(self, ctx: ActionContext, error: BaseException | PageError) -> None:
        record = error if isinstance(error, PageError) else PageError.from_exception(error)
        _logger.warning("Page error: %s", record.message)
        ctx.commit("set_page_error", record)

    @action
    async def clear_page_error(self, ctx: ActionContext) -> None:
        ctx.commit("set_page_error", None)
