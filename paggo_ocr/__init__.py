"""Paggo OCR.

Invoice upload service: stores uploaded images and PDFs, extracts their
text through the PDF text layer or Tesseract/EasyOCR, and answers
questions about the extracted text with an LLM backend.
"""

__version__ = "1.0.0"
