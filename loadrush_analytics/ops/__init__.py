"""
Write-side operations used alongside the analytics core.
"""

from loadrush_analytics.ops.bulk_upload import BulkUploader, BulkUploadError, UploadResult, parse_csv
from loadrush_analytics.ops.load_status import update_load_status

__all__ = ["BulkUploader", "BulkUploadError", "UploadResult", "parse_csv", "update_load_status"]
