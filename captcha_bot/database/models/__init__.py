from .verification_record import VerificationRecord

__all__ = ["VerificationRecord"]
