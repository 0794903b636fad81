"""
Encrypted envelope — the at-rest record produced by the vault.

Wire form: {"v": 1, "enc": "<b64url>", "iv": "<b64url>", "salt": "<b64url>"}
"""

from typing import Literal

from pydantic import BaseModel, Field

ENVELOPE_VERSION = 1


class EncryptedEnvelope(BaseModel):
    version: Literal[1] = Field(default=ENVELOPE_VERSION, alias="v")
    ciphertext: str = Field(alias="enc")
    iv: str
    salt: str

    model_config = {"populate_by_name": True, "frozen": True}

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
