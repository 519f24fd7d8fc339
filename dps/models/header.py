from pydantic import BaseModel


class HeaderInfo(BaseModel):
    """Organisation branding printed on reports."""
    company_name: str = ""
    logo: str | None = None      # data URL (base64 PNG/JPEG)
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
