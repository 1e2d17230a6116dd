"""Plain-text summaries of an order, ready to paste into a message."""

from orders.order.reconciliation import format_quantity


def _label(name: str, code: str | None) -> str:
    return f"{code} - {name}" if code else name


def missing_products_text(order) -> str:
    """One line per missing product: ``CODE - Name: qty``."""
    entries = order.missing_products or []
    if not entries:
        return "No missing products"
    return "\n".join(
        f"{_label(entry.product_name, entry.code)}: {format_quantity(entry.quantity)}" for entry in entries
    )


def invoice_summary_text(order) -> str:
    lines = [f"INVOICE - {order.client_name}", f"Order: {order.id}", "", "PRODUCTS:"]
    for product in order.products or []:
        if product.quantity > 0:
            lines.append(f"- {_label(product.name, product.code)}: {format_quantity(product.quantity)}")

    if order.missing_products:
        lines += ["", "MISSING:"]
        lines += [
            f"- {_label(entry.product_name, entry.code)}: {format_quantity(entry.quantity)}"
            for entry in order.missing_products
        ]

    if order.total_amount is not None:
        lines += ["", f"TOTAL: {order.total_amount:.2f}"]
    return "\n".join(lines)


def completed_order_summary(order) -> str:
    """Full record of a finished order: items, ledgers, history and staff."""
    lines = [
        f"ORDER {order.id}",
        f"Client: {order.client_name}",
    ]
    if order.client_address:
        lines.append(f"Address: {order.client_address}")
    if order.created_at:
        lines.append(f"Created: {order.created_at:%Y-%m-%d %H:%M}")
    lines.append(f"Status: {order.status}")
    if order.payment_method:
        lines.append(f"Payment: {order.payment_method}{'' if order.is_paid else ' (pending)'}")

    lines += ["", "PRODUCTS:"]
    for product in order.products or []:
        line = f"- {_label(product.name, product.code)}: {format_quantity(product.quantity)}"
        if product.original_quantity is not None and product.original_quantity != product.quantity:
            line += f" (ordered {format_quantity(product.original_quantity)})"
        lines.append(line)

    if order.missing_products:
        lines += ["", "MISSING:"]
        for entry in order.missing_products:
            lines.append(f"- {_label(entry.product_name, entry.code)}: {format_quantity(entry.quantity)}")

    if order.returned_products:
        lines += ["", "RETURNED:"]
        for entry in order.returned_products:
            line = f"- {_label(entry.product_name, entry.code)}: {format_quantity(entry.quantity)}"
            if entry.reason:
                line += f" ({entry.reason})"
            lines.append(line)

    timeline = order.timeline()
    if timeline:
        lines += ["", "HISTORY:"]
        for entry in timeline:
            line = f"- {entry.recorded_at:%Y-%m-%d %H:%M} {entry.actor_name}: {entry.action}"
            if entry.note:
                line += f" ({entry.note})"
            lines.append(line)

    staff = []
    for entry in timeline:
        if entry.actor_name not in staff:
            staff.append(entry.actor_name)
    if staff:
        lines += ["", f"STAFF: {', '.join(staff)}"]

    if order.initial_notes:
        lines += ["", "NOTES:", order.initial_notes]

    return "\n".join(lines)
