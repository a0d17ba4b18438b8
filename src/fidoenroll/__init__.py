"""fidoenroll: enroll a FIDO2 security key for PAM login and LUKS unlock."""

__version__ = "0.1.0"
