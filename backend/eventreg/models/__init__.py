from eventreg.models.registration import RegistrationRecord, RegistrationStatus

__all__ = ["RegistrationRecord", "RegistrationStatus"]
