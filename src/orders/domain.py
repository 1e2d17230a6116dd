"""Orders bounded context — Order Workflow from Budget to Payment.

Tracks a customer's order through picking, verification, invoicing, transit,
delivery and payment. Coordinators and fulfillment staff collaborate on the
same order; an exclusive work lock keeps two fulfillment actors from editing
line items at once.
"""

from protean.domain import Domain

orders = Domain(name="orders")
