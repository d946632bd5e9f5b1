"""Collaborators handed to each handler invocation."""

from dataclasses import dataclass
from typing import Any, Optional

from orders_api.config import ServiceConfig
from orders_api.deadline import Deadline
from orders_api.feature_flags import FeatureFlagSource
from orders_api.invoice_archive import InvoiceArchive
from orders_api.order_store import OrderStore


@dataclass
class Dependencies:
    config: ServiceConfig
    flag_source: FeatureFlagSource
    store: OrderStore
    archive: InvoiceArchive
    deadline: Optional[Deadline] = None

    @classmethod
    def from_context(cls, context: Any) -> "Dependencies":
        """Build collaborators from the environment for one invocation.

        Clients are created lazily on first use, so this never raises.
        """
        config = ServiceConfig.from_env()
        deadline = Deadline.from_context(context)
        return cls(
            config=config,
            flag_source=FeatureFlagSource(
                base_url=config.appconfig_agent_url,
                timeout=config.flag_fetch_timeout,
                retries=config.flag_fetch_retries,
            ),
            store=OrderStore(config.table_name, deadline=deadline),
            archive=InvoiceArchive(config.bucket_name, deadline=deadline),
            deadline=deadline,
        )
