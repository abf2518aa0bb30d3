"""Deterministic renderer for development and tests.

Produces small byte payloads that carry the rendered fields, so tests can
assert on what would have been printed without a PDF or QR engine.
"""

import json
from dataclasses import asdict

from ticketing.artifacts.renderer_port import ArtifactRenderer, InvoiceDocument, TicketDocument


class FakeRenderer(ArtifactRenderer):
    def __init__(self) -> None:
        self.rendered: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def render_qr(self, data: str, size: int = 300) -> bytes:
        self._check()
        self.rendered.append(("qr", data))
        return b"\x89PNG-FAKE:" + f"{size}:{data}".encode()

    def render_ticket_pdf(self, document: TicketDocument) -> bytes:
        self._check()
        self.rendered.append(("ticket", document.token))
        fields = asdict(document)
        fields.pop("qr_png")
        return b"%PDF-FAKE\n" + json.dumps(fields, sort_keys=True).encode()

    def render_invoice_pdf(self, document: InvoiceDocument) -> bytes:
        self._check()
        self.rendered.append(("invoice", document.invoice_number))
        return b"%PDF-FAKE\n" + json.dumps(asdict(document), sort_keys=True, default=str).encode()
