# Models module
from app.models.contract import (
    Contract, ContractServiceItem, BillingCycle, ContractStatus, ServiceType
)
from app.models.operations import (
    InboundReceipt, ReceiptPallet, OutboundShipment, OutboundShipmentItem,
    StorageUnit, ReceiptStatus, ShipmentStatus
)
from app.models.invoice import UsageInvoice, UsageInvoiceItem, InvoiceStatus
from app.models.freight import Transporter, FreightRateTable, FreightRateBracket

__all__ = [
    "Contract",
    "ContractServiceItem",
    "BillingCycle",
    "ContractStatus",
    "ServiceType",
    "InboundReceipt",
    "ReceiptPallet",
    "OutboundShipment",
    "OutboundShipmentItem",
    "StorageUnit",
    "ReceiptStatus",
    "ShipmentStatus",
    "UsageInvoice",
    "UsageInvoiceItem",
    "InvoiceStatus",
    "Transporter",
    "FreightRateTable",
    "FreightRateBracket",
]
