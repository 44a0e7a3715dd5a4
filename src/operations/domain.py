"""Operations bounded context: order lifecycle and shipment fulfillment.

Owns the studio's orders and the shipment records created when labels are
purchased. Carrier tracking events arrive through a webhook and are
reconciled back into both aggregates.
"""

from protean.domain import Domain

operations = Domain(name="operations")
