"""
Fábrica para criação e descriptografia de ciphertexts SHE.

Esta classe implementa as operações que dependem da chave secreta:
criptografia, descriptografia e medição do termo de erro.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .ciphertext import Encoding, SHECiphertext
from .constants import SHECryptographicParameters
from .cyclotomic import DECODING_BASIS, RingElement, mod_centered
from .exceptions import ParameterMismatchError, PreconditionViolationError
from .key_factory import SHESecretKey

logger = logging.getLogger(__name__)


class SHECiphertextFactory:
    """
    Fábrica para criação de ciphertexts SHE.

    Encrypt(s, μ) com μ ∈ R_p:
        e ← erro no coset μ + pR' (variância escalada da chave)
        c1 ← R'_q uniforme
        c = (e - c1 · s, c1)  em LSD, k = 0, l = 1

    Decrypt(s, c):
        μ = l · Tw_{m'→m}(g^(-k) · [c(s)]_p)
    """

    def __init__(self, crypto_params: SHECryptographicParameters = None):
        """
        Inicializa a fábrica com parâmetros criptográficos.

        Args:
            crypto_params: Parâmetros criptográficos SHE (usa padrão se None)
        """
        if crypto_params is None:
            crypto_params = SHECryptographicParameters()

        self.crypto_params = crypto_params

    def encrypt(
        self,
        secret_key: SHESecretKey,
        plaintext: RingElement,
        modulus: Optional[int] = None,
    ) -> SHECiphertext:
        """
        Criptografa um elemento do anel de plaintext R_p.

        Args:
            secret_key: Chave secreta em R'
            plaintext: Elemento de Z_p[x]/Φ_m (m | m')
            modulus: Módulo q do ciphertext (usa CIPHERTEXT_MODULUS se None)

        Returns:
            SHECiphertext: Ciphertext linear em LSD

        Raises:
            ParameterMismatchError: Se o plaintext não for compatível com a chave
        """
        if modulus is None:
            modulus = self.crypto_params.CIPHERTEXT_MODULUS
        if plaintext.modulus is None:
            raise ParameterMismatchError("O plaintext deve estar em um anel com módulo p")
        if secret_key.index % plaintext.index != 0:
            raise ParameterMismatchError(
                f"Índice do plaintext {plaintext.index} deve dividir "
                f"o índice da chave {secret_key.index}"
            )

        error = self.crypto_params.generate_coset_error(
            plaintext.embed(secret_key.index), secret_key.variance
        )
        ring = error.ring.with_modulus(modulus)
        c1 = self.crypto_params.generate_uniform(ring)
        c0 = error.reduce(modulus) - c1 * secret_key.reduce(modulus)

        logger.debug(
            "Criptografando plaintext de R_%d em R_%d (q=%d)",
            plaintext.index,
            secret_key.index,
            modulus,
        )
        return SHECiphertext(
            encoding=Encoding.LSD,
            k=0,
            scale=1,
            components=[c0, c1],
            plaintext_index=plaintext.index,
            plaintext_modulus=plaintext.modulus,
        )

    def encrypt_many(
        self, secret_key: SHESecretKey, plaintexts: Sequence[RingElement]
    ) -> List[SHECiphertext]:
        """Criptografa uma sequência de plaintexts sob a mesma chave."""
        return [self.encrypt(secret_key, pt) for pt in plaintexts]

    @staticmethod
    def error_term(secret_key: SHESecretKey, ct: SHECiphertext) -> RingElement:
        """
        Termo de erro do ciphertext: c(s) em LSD, com lift centrado na base
        de decodificação para Z[x]/Φ_m'.

        Raises:
            ParameterMismatchError: Se a chave não estiver no anel do ciphertext
        """
        if secret_key.index != ct.ciphertext_index:
            raise ParameterMismatchError(
                f"Chave em R_{secret_key.index} e ciphertext em R_{ct.ciphertext_index}"
            )
        ct = ct.to_lsd()
        return ct.evaluate(secret_key.reduce(ct.modulus)).lift(DECODING_BASIS)

    @staticmethod
    def error_term_unrestricted(secret_key: SHESecretKey, ct: SHECiphertext) -> np.ndarray:
        """Coordenadas centradas do termo de erro na base de decodificação."""
        error = SHECiphertextFactory.error_term(secret_key, ct)
        return mod_centered(error.to_decoding(), ct.modulus)

    @staticmethod
    def decrypt(secret_key: SHESecretKey, ct: SHECiphertext) -> RingElement:
        """
        Descriptografa um ciphertext.

        Args:
            secret_key: Chave secreta no anel do ciphertext
            ct: Ciphertext (qualquer codificação e tamanho)

        Returns:
            RingElement: Plaintext em Z_p[x]/Φ_m

        Raises:
            PreconditionViolationError: Se a divisão exata por g falhar
        """
        ct = ct.to_lsd()
        value = SHECiphertextFactory.error_term(secret_key, ct).reduce(ct.plaintext_modulus)

        for _ in range(ct.k):
            value = value.div_g()
            if value is None:
                raise PreconditionViolationError(
                    "Divisão exata por g falhou na descriptografia "
                    "(ciphertext corrompido ou chave incorreta)"
                )

        return value.twace(ct.plaintext_index) * ct.scale

    @staticmethod
    def decrypt_unrestricted(secret_key: SHESecretKey, ct: SHECiphertext) -> RingElement:
        """Descriptografa ciphertexts de qualquer tamanho (1 a 3 componentes)."""
        return SHECiphertextFactory.decrypt(secret_key, ct)


# Função de conveniência para criar instância da fábrica
def create_she_factory(
    crypto_params: SHECryptographicParameters = None,
) -> SHECiphertextFactory:
    """
    Cria uma nova instância da fábrica de ciphertexts SHE.

    Args:
        crypto_params: Parâmetros criptográficos (usa padrão se None)

    Returns:
        SHECiphertextFactory: Nova instância da fábrica
    """
    return SHECiphertextFactory(crypto_params)
