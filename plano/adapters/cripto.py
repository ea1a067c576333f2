"""
Criptografia dos e-mails de destinatários (AES-256-GCM).

Formato gravado: ``iv:cifra:tag``, cada parte em base64. A chave vem de
``RECIPIENTS_SECRET`` (base64 de 32 bytes).
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from plano.config import get_settings
from plano.domain.errors import PlanoError, ValidationError

_IV_BYTES = 12
_TAG_BYTES = 16


def _chave(secret: Optional[str] = None) -> bytes:
    secret = secret if secret is not None else get_settings().recipients_secret
    try:
        key = base64.b64decode(secret or "", validate=True)
    except (binascii.Error, ValueError):
        key = b""
    if len(key) != 32:
        raise PlanoError("RECIPIENTS_SECRET deve ser base64 de 32 bytes")
    return key


def gerar_segredo() -> str:
    """Novo segredo aleatório pronto para o .env."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode("ascii")


def encrypt_email(email: str, secret: Optional[str] = None) -> str:
    iv = os.urandom(_IV_BYTES)
    # AESGCM devolve cifra || tag
    dados = AESGCM(_chave(secret)).encrypt(iv, email.encode("utf-8"), None)
    cifra, tag = dados[:-_TAG_BYTES], dados[-_TAG_BYTES:]
    return ":".join(base64.b64encode(p).decode("ascii") for p in (iv, cifra, tag))


def decrypt_email(enc: str, secret: Optional[str] = None) -> str:
    partes = (enc or "").split(":")
    if len(partes) != 3 or not all(partes):
        raise ValidationError("Formato inválido de e-mail criptografado")
    try:
        iv, cifra, tag = (base64.b64decode(p, validate=True) for p in partes)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Formato inválido de e-mail criptografado") from e
    if len(iv) != _IV_BYTES or len(tag) != _TAG_BYTES:
        raise ValidationError("Formato inválido de e-mail criptografado")
    try:
        return AESGCM(_chave(secret)).decrypt(iv, cifra + tag, None).decode("utf-8")
    except InvalidTag as e:
        raise PlanoError("Não foi possível descriptografar o e-mail (chave incorreta?)") from e
