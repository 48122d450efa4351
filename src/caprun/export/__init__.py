from .service import EVENT_LOG_COLUMNS, ExportService, encode_csv_cell

__all__ = ["EVENT_LOG_COLUMNS", "ExportService", "encode_csv_cell"]
