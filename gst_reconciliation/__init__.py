"""Purchase order and sales tax reconciliation for GST reporting."""
