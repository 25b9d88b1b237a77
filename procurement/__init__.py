from .extractor import PdfTextExtractor, TextFragment, reconstruct_lines
from .spreadsheet import SpreadsheetReader
from .po_parser import PurchaseOrderParser
from .po_importer import PurchaseOrderImporter
from .asset_importer import AssetImporter, slugify
from .asset_exporter import AssetExporter
from .receiving import ReceivingEngine
from .database import Database
from .service import ProcurementService

__all__ = [
    "PdfTextExtractor", "TextFragment", "reconstruct_lines",
    "SpreadsheetReader", "PurchaseOrderParser", "PurchaseOrderImporter",
    "AssetImporter", "slugify", "AssetExporter",
    "ReceivingEngine", "Database", "ProcurementService",
]
