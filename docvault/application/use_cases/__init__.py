from docvault.application.use_cases.document_operations import DocumentOperations

__all__ = ["DocumentOperations"]
