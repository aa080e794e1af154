from .finalizer import SessionFinalizer
from .submitter import CredentialSubmitter

__all__ = ["CredentialSubmitter", "SessionFinalizer"]
