from .completion_service import CompletionService, CompletionServiceError

__all__ = ["CompletionService", "CompletionServiceError"]
