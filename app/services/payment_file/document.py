"""ISO 20022 pain.001.001.03 document assembly.

Produces the bank-facing XML::

    <Document xmlns="urn:iso:std:iso:20022:tech:xsd:pain.001.001.03">
      <CstmrCdtTrfInitn>
        <GrpHdr>MsgId, CreDtTm, NbOfTxs, CtrlSum, InitgPty</GrpHdr>
        <PmtInf>
          PmtInfId, PmtMtd, BtchBookg, NbOfTxs, CtrlSum, PmtTpInf,
          ReqdExctnDt, Dbtr, DbtrAcct, DbtrAgt, ChrgBr,
          <CdtTrfTxInf>...</CdtTrfTxInf>*
        </PmtInf>
      </CstmrCdtTrfInitn>
    </Document>

Element order is significant for bank acceptance; do not reorder. The root
also carries ``xsi:schemaLocation`` pointing at the pain.001.001.03 XSD,
which the bank uses to pick the schema it validates against.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from app.schemas.payment_file import (
    DEFAULT_ORGANIZATION_ISSUER,
    DebtorConfiguration,
    GenerationOptions,
)
from app.schemas.refund import ReconciledTransaction
from app.services.payment_file.formatting import (
    format_amount,
    round_amount,
    sanitize_text,
)
from app.services.payment_file.iban import normalize_iban
from app.services.payment_file.identifiers import IdentifierGenerator

PAIN_001_NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:pain.001.001.03"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{PAIN_001_NAMESPACE} pain.001.001.03.xsd"
CURRENCY = "EUR"
PAYMENT_METHOD = "TRF"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


@dataclass(frozen=True)
class DocumentHeader:
    """Batch-level values stamped into both GrpHdr and PmtInf."""

    message_id: str
    payment_info_id: str
    creation_datetime: str
    execution_date: date
    transaction_count: int
    control_sum: Decimal


def _sub(
    parent: ET.Element, tag: str, text: Optional[str] = None, **attrib: str
) -> ET.Element:
    el = ET.SubElement(parent, tag, attrib)
    if text is not None:
        el.text = text
    return el


class DocumentBuilder:
    """Serializes reconciled transfers plus debtor identity into pain.001 XML."""

    def __init__(
        self,
        debtor: DebtorConfiguration,
        options: GenerationOptions,
    ) -> None:
        self.debtor = debtor
        self.options = options

    # ── Public API ───────────────────────────────────────────────────

    def build_header(
        self,
        transactions: Sequence[ReconciledTransaction],
        identifiers: IdentifierGenerator,
        execution_date: date,
    ) -> DocumentHeader:
        """Compute count and control sum once for both header blocks.

        The sum is taken over the same rounded values written as ``InstdAmt``.
        """
        return DocumentHeader(
            message_id=identifiers.message_id(),
            payment_info_id=identifiers.payment_info_id(),
            creation_datetime=identifiers.creation_datetime(),
            execution_date=execution_date,
            transaction_count=len(transactions),
            control_sum=sum(
                (round_amount(t.amount) for t in transactions), Decimal(0)
            ),
        )

    def build(
        self,
        header: DocumentHeader,
        transactions: Sequence[ReconciledTransaction],
        identifiers: IdentifierGenerator,
    ) -> str:
        """Return the full XML document, declaration included."""
        doc = ET.Element(
            "Document",
            {
                "xmlns": PAIN_001_NAMESPACE,
                "xmlns:xsi": XSI_NAMESPACE,
                "xsi:schemaLocation": SCHEMA_LOCATION,
            },
        )
        initiation = _sub(doc, "CstmrCdtTrfInitn")
        self._group_header(initiation, header)
        self._payment_information(initiation, header, transactions, identifiers)

        ET.indent(doc, space="    ")
        return XML_DECLARATION + ET.tostring(doc, encoding="unicode")

    # ── Blocks ───────────────────────────────────────────────────────

    def _group_header(self, parent: ET.Element, header: DocumentHeader) -> None:
        grp_hdr = _sub(parent, "GrpHdr")
        _sub(grp_hdr, "MsgId", header.message_id)
        _sub(grp_hdr, "CreDtTm", header.creation_datetime)
        _sub(grp_hdr, "NbOfTxs", str(header.transaction_count))
        _sub(grp_hdr, "CtrlSum", format_amount(header.control_sum))

        initg_pty = _sub(grp_hdr, "InitgPty")
        _sub(initg_pty, "Nm", sanitize_text(self.debtor.name))
        self._organization_id(initg_pty)

    def _payment_information(
        self,
        parent: ET.Element,
        header: DocumentHeader,
        transactions: Sequence[ReconciledTransaction],
        identifiers: IdentifierGenerator,
    ) -> None:
        opts = self.options
        pmt_inf = _sub(parent, "PmtInf")
        _sub(pmt_inf, "PmtInfId", header.payment_info_id)
        _sub(pmt_inf, "PmtMtd", PAYMENT_METHOD)
        _sub(pmt_inf, "BtchBookg", "true" if opts.batch_booking else "false")
        _sub(pmt_inf, "NbOfTxs", str(header.transaction_count))
        _sub(pmt_inf, "CtrlSum", format_amount(header.control_sum))

        pmt_tp_inf = _sub(pmt_inf, "PmtTpInf")
        _sub(pmt_tp_inf, "InstrPrty", opts.instruction_priority)
        _sub(_sub(pmt_tp_inf, "SvcLvl"), "Cd", opts.service_level)
        _sub(_sub(pmt_tp_inf, "CtgyPurp"), "Cd", opts.category_purpose)

        _sub(pmt_inf, "ReqdExctnDt", header.execution_date.isoformat())

        dbtr = _sub(pmt_inf, "Dbtr")
        _sub(dbtr, "Nm", sanitize_text(self.debtor.name))
        self._postal_address(dbtr)
        self._organization_id(dbtr)

        dbtr_acct = _sub(pmt_inf, "DbtrAcct")
        _sub(_sub(dbtr_acct, "Id"), "IBAN", normalize_iban(self.debtor.iban))
        _sub(dbtr_acct, "Ccy", CURRENCY)

        dbtr_agt = _sub(pmt_inf, "DbtrAgt")
        _sub(_sub(dbtr_agt, "FinInstnId"), "BIC", self.debtor.bic.strip().upper())

        _sub(pmt_inf, "ChrgBr", opts.charge_bearer)

        for txn in transactions:
            self._credit_transfer(pmt_inf, txn, identifiers)

    def _credit_transfer(
        self,
        parent: ET.Element,
        txn: ReconciledTransaction,
        identifiers: IdentifierGenerator,
    ) -> None:
        tx_inf = _sub(parent, "CdtTrfTxInf")

        pmt_id = _sub(tx_inf, "PmtId")
        _sub(pmt_id, "InstrId", identifiers.instruction_id(txn.refund_id))
        _sub(pmt_id, "EndToEndId", identifiers.end_to_end_id(txn.refund_id))

        _sub(_sub(tx_inf, "Amt"), "InstdAmt", format_amount(txn.amount), Ccy=CURRENCY)
        _sub(_sub(tx_inf, "Cdtr"), "Nm", sanitize_text(txn.creditor_name))
        _sub(_sub(_sub(tx_inf, "CdtrAcct"), "Id"), "IBAN", txn.iban)
        _sub(_sub(tx_inf, "RmtInf"), "Ustrd", sanitize_text(txn.remittance_info))

    def _postal_address(self, parent: ET.Element) -> None:
        lines = self.debtor.address_lines
        if not lines:
            return
        pstl_adr = _sub(parent, "PstlAdr")
        _sub(pstl_adr, "Ctry", self.debtor.country.strip().upper())
        for line in lines:
            _sub(pstl_adr, "AdrLine", sanitize_text(line))

    def _organization_id(self, parent: ET.Element) -> None:
        if not self.debtor.organization_id:
            return
        othr = _sub(_sub(_sub(parent, "Id"), "OrgId"), "Othr")
        _sub(othr, "Id", sanitize_text(self.debtor.organization_id))
        _sub(
            othr,
            "Issr",
            sanitize_text(
                self.debtor.organization_issuer or DEFAULT_ORGANIZATION_ISSUER
            ),
        )
