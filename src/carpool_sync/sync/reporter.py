"""Report formatting for the active week.

Provides human-readable and machine-readable output:

- ``generate_share_text`` -- plain-text status for copy-to-clipboard sharing.
- ``document_report`` -- computes the stats of a document and renders it.
- ``report_to_json`` -- structured dict for ``--json`` CLI output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AppData, Trip

DIVIDER = "=" * 50
PAID_MARK = "✅ PAGO"
PENDING_MARK = "❌ PENDENTE"
EMPTY_WEEK_TEXT = "Nenhuma viagem cadastrada nesta semana ativa."


def format_money(value: float) -> str:
    """Format *value* with two decimals and a decimal comma (``10,00``)."""
    return f"{value:.2f}".replace(".", ",")


def generate_share_text(
    trips: list[Trip],
    payers: int,
    total_received: float,
    week_name: str,
) -> str:
    """Render the payment status of *trips* as shareable text.

    Args:
        trips: Trips of the week, in display order.
        payers: Number of paid participant records.
        total_received: Amount received so far.
        week_name: Header week name.

    Returns:
        Multi-line text; each trip section ends with a blank line.
    """
    lines: list[str] = [
        f"📅 Status de Pagamento de Caronas - {week_name}",
        f"💰 Total Recebido: R$ {format_money(total_received)}",
        f"👥 Pagamentos Concluídos: {payers}",
        DIVIDER,
        "",
    ]

    if not trips:
        return "\n".join(lines) + "\n" + EMPTY_WEEK_TEXT

    for trip in trips:
        lines.append(f"📅 {trip.day} - {trip.type.value}:")
        for p in trip.participants:
            status = PAID_MARK if p.paid else PENDING_MARK
            lines.append(f"- {p.name}: {status}")
        lines.append("")
    return "\n".join(lines) + "\n"


def document_report(doc: AppData, payment_value: float) -> str:
    """Render the active week of *doc* with its computed totals."""
    return generate_share_text(
        doc.active_trips,
        doc.total_payers,
        doc.total_payers * payment_value,
        doc.current_week_name,
    )


def report_to_json(doc: AppData, payment_value: float) -> dict:
    """Summarise the active week of *doc* as a dict.

    Returns:
        Dict with the week name, counts, totals and per-trip details.
    """
    return {
        "week": doc.current_week_name,
        "counts": {
            "trips": len(doc.active_trips),
            "participants": doc.total_participants,
            "payers": doc.total_payers,
            "archived_weeks": len(doc.archives),
        },
        "totals": {
            "received": round(doc.total_payers * payment_value, 2),
            "expected": round(doc.total_participants * payment_value, 2),
        },
        "trips": [
            {
                "day": t.day,
                "type": t.type.value,
                "participants": [
                    {"name": p.name, "paid": p.paid} for p in t.participants
                ],
            }
            for t in doc.active_trips
        ],
    }
