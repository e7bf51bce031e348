"""Domain initialization and configuration.

The checkout bounded context drives a shopping cart through shipping,
payment and review to a confirmed, paid order. Order persistence and money
movement belong to external services reached through ``checkout.gateways``.
"""

import structlog
from protean.domain import Domain

from checkout.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

logger = structlog.get_logger(__name__)

# Domain Composition Root
checkout = Domain(name="checkout")
