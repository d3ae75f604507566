from .sns_service import SnsService

__all__ = ["SnsService"]
