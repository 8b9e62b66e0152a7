"""ORM models exposed for easy imports."""

from .bank_holiday import BankHoliday
from .billable_visit import BillableVisit
from .care_package import CarePackage
from .care_visit import CareVisit
from .credit_note import CreditNote
from .enums import (
    BillableVisitStatus,
    BillingTimeBasis,
    CreditNoteStatus,
    DayType,
    FunderType,
    InvoiceFrequency,
    InvoiceStatus,
)
from .funder import Funder
from .invoice import Invoice
from .invoice_line import InvoiceLine
from .payment import InvoicePayment
from .rate_card import MileageRate, RateCard, RateLine
from .sequence import DocumentSequence
from .service_user import ServiceUser

__all__ = [
    "BankHoliday",
    "BillableVisit",
    "BillableVisitStatus",
    "BillingTimeBasis",
    "CarePackage",
    "CareVisit",
    "CreditNote",
    "CreditNoteStatus",
    "DayType",
    "DocumentSequence",
    "Funder",
    "FunderType",
    "Invoice",
    "InvoiceFrequency",
    "InvoiceLine",
    "InvoicePayment",
    "InvoiceStatus",
    "MileageRate",
    "RateCard",
    "RateLine",
    "ServiceUser",
]
