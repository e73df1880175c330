"""Workbook decoding adapters, cell extraction and sheet reading."""
