"""
Ticket documents.

A ticket is built from the booking's own snapshot (fare, seats, journey
date and times) plus display fields of the linked bus and user, then drawn
either as a PDF with reportlab or as HTML through a Jinja2 template.
Nothing here writes to the booking.
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
import logging
import os

from jinja2 import Environment, FileSystemLoader, select_autoescape
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from geobus.domain.exceptions import NotFoundError
from geobus.infrastructure.db.models import Booking, Bus, User

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

TICKET_TITLE = "Geobus booking"

TRAVEL_INSTRUCTIONS = (
    "Arrive at boarding point 30 minutes before departure time",
    "Carry any government ID card (Aadhar/Driving License/Passport)",
    "This ticket is non-transferable",
    "Contact support for any changes or cancellations",
    "Keep this ticket safe for your journey",
    "Boarding point details will be sent via SMS/Email",
)

BRAND_GREEN = HexColor("#28a745")
TEXT_GREY = HexColor("#444444")
DIVIDER_GREY = HexColor("#e0e0e0")
REFUND_RED = HexColor("#dc3545")


def format_amount(amount) -> str:
    return f"Rs. {amount:.2f}"


@dataclass(frozen=True)
class TicketDocument:
    ticket_id: str
    title: str
    bus_facts: tuple[tuple[str, str], ...]
    passenger_facts: tuple[tuple[str, str], ...]
    payment_facts: tuple[tuple[str, str], ...]
    cancellation_facts: tuple[tuple[str, str], ...] = ()
    instructions: tuple[str, ...] = TRAVEL_INSTRUCTIONS
    image_path: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return bool(self.cancellation_facts)


@dataclass(frozen=True)
class RenderedTicket:
    content: bytes
    media_type: str
    filename: str


@dataclass
class TicketRenderer:
    asset_dir: Path = field(
        default_factory=lambda: Path(os.getenv("BUS_IMAGE_DIR", "images"))
    )

    def build(self, booking: Booking, bus: Bus | None, user: User | None) -> TicketDocument:
        if bus is None:
            raise NotFoundError("Bus for this ticket no longer exists")
        if user is None:
            raise NotFoundError("Passenger for this ticket no longer exists")

        journey_date = booking.journey_date or bus.departure_date
        seats = booking.seats
        first_age = seats[0].passenger_age if seats else None

        bus_facts = (
            ("Bus Name", bus.bus_name),
            ("Bus Number", bus.bus_number),
            ("Route", f"{bus.from_location} to {bus.to_location}"),
            ("Departure", booking.departure_time_snapshot or "-"),
            ("Arrival", booking.arrival_time_snapshot or "-"),
            ("Journey Date", journey_date.isoformat() if journey_date else ""),
            ("Booking Date", booking.booking_date.date().isoformat() if booking.booking_date else ""),
            ("Payment Status", booking.payment_status.value.upper()),
            ("Payment ID", booking.ticket_id),
        )
        passenger_facts = (
            ("Name", user.name),
            ("Seat Number", ", ".join(seat.seat_number for seat in seats) or "-"),
            ("Age", str(first_age) if first_age is not None else "-"),
            ("Mobile", user.mobile or "-"),
            ("Email", user.email),
        )
        payment_facts = (
            ("Total", format_amount(booking.total_amount)),
            ("Method", booking.payment_method.upper()),
            ("Status", booking.status.value.upper()),
        )

        cancellation_facts: tuple[tuple[str, str], ...] = ()
        if booking.is_cancelled:
            cancelled_on = booking.cancellation_date
            cancellation_facts = (
                ("Refund", format_amount(booking.refund_amount)),
                ("Cancelled on", cancelled_on.date().isoformat() if cancelled_on else ""),
            )

        return TicketDocument(
            ticket_id=booking.ticket_id,
            title=TICKET_TITLE,
            bus_facts=bus_facts,
            passenger_facts=passenger_facts,
            payment_facts=payment_facts,
            cancellation_facts=cancellation_facts,
            image_path=self._resolve_image(bus.image),
        )

    def render(
        self,
        booking: Booking,
        bus: Bus | None,
        user: User | None,
        output_format: str = "pdf",
    ) -> RenderedTicket:
        document = self.build(booking, bus, user)
        if output_format == "html":
            return RenderedTicket(
                content=self.render_html(document).encode("utf-8"),
                media_type="text/html; charset=utf-8",
                filename=f"ticket-{document.ticket_id}.html",
            )
        return RenderedTicket(
            content=self.render_pdf(document),
            media_type="application/pdf",
            filename=f"ticket-{document.ticket_id}.pdf",
        )

    def render_html(self, document: TicketDocument) -> str:
        template = _jinja_env().get_template("ticket.html")
        return template.render(ticket=document)

    def render_pdf(self, document: TicketDocument) -> bytes:
        buffer = BytesIO()
        # invariant=1 drops timestamps and random ids from the PDF output
        pdf = canvas.Canvas(buffer, pagesize=letter, invariant=1)
        pdf.setTitle(f"Ticket {document.ticket_id}")

        page_width, page_height = letter
        margin = 50
        content_width = page_width - 2 * margin
        y = page_height - margin

        # Header
        header_height = 64
        pdf.setFillColor(BRAND_GREEN)
        pdf.rect(margin, y - header_height, content_width, header_height, stroke=0, fill=1)
        pdf.setFillColor(HexColor("#ffffff"))
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawString(margin + 12, y - 28, document.title)
        pdf.setFont("Helvetica", 10)
        pdf.drawString(margin + 12, y - 48, f"Booking ID: {document.ticket_id}")
        y -= header_height + 12

        # Bus illustration
        image_height = 150
        if document.image_path:
            image_width = content_width * 0.60
            try:
                pdf.drawImage(
                    ImageReader(document.image_path),
                    margin + (content_width - image_width) / 2,
                    y - image_height,
                    width=image_width,
                    height=image_height,
                    preserveAspectRatio=True,
                    anchor="c",
                    mask="auto",
                )
            except OSError:
                logger.warning("Could not add bus image %s to ticket", document.image_path)
        y -= image_height + 12

        # Two columns: bus facts left, passenger facts right
        column_gap = 20
        column_width = (content_width - column_gap) / 2
        left_end = self._draw_column(pdf, "Bus Information", document.bus_facts, margin, y)
        right_end = self._draw_column(
            pdf,
            "Passenger Information",
            document.passenger_facts,
            margin + column_width + column_gap,
            y,
        )
        y = min(left_end, right_end) - 10

        self._draw_divider(pdf, margin, y, content_width)
        y -= 14

        # Payment box
        box_width, box_height = 220, 60
        pdf.setStrokeColor(BRAND_GREEN)
        pdf.roundRect(margin, y - box_height, box_width, box_height, 6, stroke=1, fill=0)
        pdf.setFillColor(HexColor("#000000"))
        pdf.setFont("Helvetica-Bold", 11)
        pdf.drawString(margin + 8, y - 16, "Payment Details")
        facts = dict(document.payment_facts)
        pdf.setFont("Helvetica", 11)
        pdf.setFillColor(TEXT_GREY)
        pdf.drawString(margin + 8, y - 32, f"Total: {facts['Total']}")
        pdf.drawString(margin + 8, y - 48, f"Method: {facts['Method']}")
        pdf.drawString(margin + 110, y - 48, f"Status: {facts['Status']}")

        if document.is_cancelled:
            cancelled = dict(document.cancellation_facts)
            pdf.setFillColor(REFUND_RED)
            pdf.drawString(margin + box_width + 20, y - 32, f"Refund: {cancelled['Refund']}")
            pdf.setFillColor(TEXT_GREY)
            pdf.drawString(
                margin + box_width + 20,
                y - 48,
                f"Cancelled on: {cancelled['Cancelled on']}",
            )
        y -= box_height + 16

        self._draw_divider(pdf, margin, y, content_width)
        y -= 20

        pdf.setFillColor(HexColor("#000000"))
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(margin, y, "Important Instructions")
        y -= 18
        pdf.setFillColor(TEXT_GREY)
        pdf.setFont("Helvetica", 10)
        for instruction in document.instructions:
            pdf.drawString(margin, y, f"- {instruction}")
            y -= 15

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    @staticmethod
    def _draw_column(pdf, heading, facts, x, y) -> float:
        pdf.setFillColor(HexColor("#000000"))
        pdf.setFont("Helvetica-Bold", 13)
        pdf.drawString(x, y, heading)
        y -= 18
        pdf.setFillColor(TEXT_GREY)
        pdf.setFont("Helvetica", 11)
        for label, value in facts:
            pdf.drawString(x, y, f"{label}: {value}")
            y -= 16
        return y

    @staticmethod
    def _draw_divider(pdf, x, y, width) -> None:
        pdf.setStrokeColor(DIVIDER_GREY)
        pdf.line(x, y, x + width, y)

    def _resolve_image(self, image: str | None) -> str | None:
        if not image:
            return None
        path = Path(self.asset_dir) / image
        return str(path) if path.is_file() else None


def _jinja_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )
