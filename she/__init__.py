# Pacote SHE

from .ciphertext import Encoding, SHECiphertext
from .constants import SHECryptographicParameters
from .cyclotomic import CyclotomicRing, RingElement
from .exceptions import ParameterMismatchError, PreconditionViolationError, SHEError
from .gadget import BaseBGadget, TrivialGadget
from .linear import LinearMap
from .key_switching import KeySwitchLinear, KeySwitchQuadCirc, RingTunnel
from .ciphertext_factory import (
    SHECiphertextFactory,
    create_she_factory,
)
from .key_factory import (
    SHEKeyFactory,
    SHESecretKey,
    create_key_factory,
)

__all__ = [
    "Encoding",
    "SHECiphertext",
    "SHECryptographicParameters",
    "CyclotomicRing",
    "RingElement",
    "SHEError",
    "PreconditionViolationError",
    "ParameterMismatchError",
    "BaseBGadget",
    "TrivialGadget",
    "LinearMap",
    "KeySwitchLinear",
    "KeySwitchQuadCirc",
    "RingTunnel",
    "SHECiphertextFactory",
    "SHESecretKey",
    "SHEKeyFactory",
    "create_she_factory",
    "create_key_factory",
]
