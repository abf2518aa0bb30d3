"""Invoices follow confirmation and every refund."""

from protean.utils.globals import current_domain

from ticketing.invoice.invoice import Invoice, InvoiceStatus
from ticketing.payment.refund import RefundPayment


def _invoices(payment_id):
    return current_domain.repository_for(Invoice).for_payment(str(payment_id))


class TestInvoices:
    def test_confirmation_issues_the_first_invoice(self, paid_payment, blob_store):
        invoices = _invoices(paid_payment.id)
        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.filename == f"invoice_{paid_payment.id}.pdf"
        assert invoice.total == 150.0
        assert invoice.status == InvoiceStatus.ISSUED.value
        assert blob_store.exists(invoice.filename)

    def test_no_invoice_for_pending_payment(self, pending_payment):
        assert _invoices(pending_payment.id) == []

    def test_refund_supersedes_the_invoice(self, paid_payment, blob_store):
        current_domain.process(RefundPayment(payment_id=str(paid_payment.id), amount=40.0), asynchronous=False)

        first, second = _invoices(paid_payment.id)
        assert first.status == InvoiceStatus.VOIDED.value
        assert second.status == InvoiceStatus.ISSUED.value
        assert second.revision == 1
        assert second.refunded_amount == 40.0
        assert second.filename == f"invoice_{paid_payment.id}_r1.pdf"
        # earlier file is kept as it was
        assert blob_store.exists(first.filename)
        assert blob_store.exists(second.filename)

    def test_current_invoice_is_latest_revision(self, paid_payment):
        for amount in (10.0, 20.0):
            current_domain.process(RefundPayment(payment_id=str(paid_payment.id), amount=amount), asynchronous=False)

        current = current_domain.repository_for(Invoice).current_for(str(paid_payment.id))
        assert current.revision == 2
        assert current.refunded_amount == 30.0
