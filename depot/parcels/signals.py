"""
Domain events for the package lifecycle.

Events are dispatched only after the surrounding transaction commits, so
receivers never observe a transition that was rolled back.
"""

import logging
from functools import partial

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Sent with: package_id, old_status, new_status, actor_id
package_status_changed = Signal()

# Sent with: package_id, code, customer_id
delivery_code_issued = Signal()

# Sent with: package_id, shipment_id, staff_id
package_delivered = Signal()

# Sent with: shipment_id
shipment_delivered = Signal()


def _dispatch(signal, sender, **kwargs):
    for receiver, response in signal.send_robust(sender=sender, **kwargs):
        if isinstance(response, Exception):
            logger.error(
                f"Receiver {getattr(receiver, '__qualname__', receiver)} failed: {response}",
                exc_info=(type(response), response, response.__traceback__)
            )


def send_on_commit(signal, sender, **kwargs):
    """Schedule ``signal`` to be sent once the current transaction commits."""
    transaction.on_commit(partial(_dispatch, signal, sender, **kwargs))
