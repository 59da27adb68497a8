"""
Parâmetros centralizados para o esquema SHE simétrico sobre anéis ciclotômicos.

Esta classe organiza os parâmetros criptográficos de forma semântica:
- Índices ciclotômicos do anel de plaintext (m) e de ciphertext (m')
- Módulos de plaintext (p), de ciphertext (q) e das dicas de key switching (q')
- Base do gadget usado na decomposição
- Variância escalada usada para amostrar chaves e erros

Configurações pré-definidas:
- Básica: m = m' = 8, p = 2, q = 40961
- Troca de anel: m = 4, m' = 8, p = 2, q = 40961
- Troca de módulo: m = m' = 8, p = 2, q = 40961 · 65537
"""

import logging
import os
import secrets
from math import gcd
from random import SystemRandom
from typing import List, Optional

import numpy as np

from .cyclotomic import CyclotomicRing, RingElement, mod_centered
from .exceptions import ParameterMismatchError

logger = logging.getLogger(__name__)

# Semente opcional para execuções reprodutíveis
_SEED_ENV_VAR = "SHE_RANDOM_SEED"


class SHECryptographicParameters:
    """
    Classe que centraliza todos os parâmetros criptográficos do esquema SHE.

    Os índices e módulos são valores de tempo de execução; as relações entre
    eles (m | m', gcd(p, q) = 1, q | q') são verificadas no construtor.
    """

    def __init__(
        self,
        plaintext_index: int = 8,  # m - índice do anel de plaintext
        ciphertext_index: Optional[int] = None,  # m' - índice do anel de ciphertext
        plaintext_modulus: int = 2,  # p
        ciphertext_modulus: int = 40961,  # q
        hint_modulus: Optional[int] = None,  # q' - módulo das dicas de key switching
        gadget_base: int = 256,  # B - base da decomposição do gadget
        variance: float = 1.0,  # v - variância escalada
        seed: Optional[int] = None,
    ):
        """
        Inicializa os parâmetros criptográficos SHE.

        Args:
            plaintext_index: Índice m do anel de plaintext R_p
            ciphertext_index: Índice m' do anel de ciphertext R'_q (usa m se None)
            plaintext_modulus: Módulo p do plaintext
            ciphertext_modulus: Módulo q do ciphertext
            hint_modulus: Módulo q' das dicas (usa q · (2^32 + 15) se None)
            gadget_base: Base B do gadget
            variance: Variância escalada para chaves e erros
            seed: Semente do gerador numpy (None = fonte criptográfica do sistema)

        Raises:
            ParameterMismatchError: Se as relações entre os parâmetros não valem
        """
        if ciphertext_index is None:
            ciphertext_index = plaintext_index
        if hint_modulus is None:
            hint_modulus = ciphertext_modulus * ((1 << 32) + 15)
        if seed is None and os.environ.get(_SEED_ENV_VAR):
            seed = int(os.environ[_SEED_ENV_VAR])

        self.PLAINTEXT_INDEX = plaintext_index
        self.CIPHERTEXT_INDEX = ciphertext_index
        self.PLAINTEXT_MODULUS = plaintext_modulus
        self.CIPHERTEXT_MODULUS = ciphertext_modulus
        self.HINT_MODULUS = hint_modulus
        self.GADGET_BASE = gadget_base
        self.VARIANCE = variance
        self.seed = seed

        self.validate_parameters()

        # sem semente, todas as amostras vêm de secrets / SystemRandom
        if seed is None:
            self._rng = None
            self._system_random = SystemRandom()
        else:
            self._rng = np.random.default_rng(seed)
            self._system_random = None

    def validate_parameters(self):
        """Valida as relações entre índices e módulos."""
        if self.CIPHERTEXT_INDEX % self.PLAINTEXT_INDEX != 0:
            raise ParameterMismatchError(
                f"Índice do plaintext {self.PLAINTEXT_INDEX} deve dividir "
                f"o índice do ciphertext {self.CIPHERTEXT_INDEX}"
            )
        if self.PLAINTEXT_MODULUS < 2:
            raise ParameterMismatchError(
                f"Módulo do plaintext deve ser >= 2, recebido: {self.PLAINTEXT_MODULUS}"
            )
        if gcd(self.PLAINTEXT_MODULUS, self.CIPHERTEXT_MODULUS) != 1:
            raise ParameterMismatchError(
                f"p={self.PLAINTEXT_MODULUS} e q={self.CIPHERTEXT_MODULUS} "
                "devem ser coprimos"
            )
        if self.HINT_MODULUS % self.CIPHERTEXT_MODULUS != 0:
            raise ParameterMismatchError(
                f"q'={self.HINT_MODULUS} deve ser múltiplo de q={self.CIPHERTEXT_MODULUS}"
            )
        if self.GADGET_BASE < 2:
            raise ParameterMismatchError(
                f"Base do gadget deve ser >= 2, recebido: {self.GADGET_BASE}"
            )
        if self.VARIANCE <= 0:
            raise ParameterMismatchError(
                f"Variância deve ser positiva, recebido: {self.VARIANCE}"
            )

    # === ESTRUTURAS ALGÉBRICAS ===
    def plaintext_ring(self) -> CyclotomicRing:
        """Anel de plaintext R_p = Z_p[x]/Φ_m."""
        return CyclotomicRing(self.PLAINTEXT_INDEX, self.PLAINTEXT_MODULUS)

    def ciphertext_ring(self) -> CyclotomicRing:
        """Anel de ciphertext R'_q = Z_q[x]/Φ_m'."""
        return CyclotomicRing(self.CIPHERTEXT_INDEX, self.CIPHERTEXT_MODULUS)

    def hint_ring(self) -> CyclotomicRing:
        """Anel R'_q' onde vivem as dicas de key switching."""
        return CyclotomicRing(self.CIPHERTEXT_INDEX, self.HINT_MODULUS)

    def integer_ring(self, index: Optional[int] = None) -> CyclotomicRing:
        """Anel inteiro Z[x]/Φ_m' (ou de outro índice)."""
        return CyclotomicRing(index or self.CIPHERTEXT_INDEX)

    @classmethod
    def basic_config(cls, **kwargs):
        """
        Configuração básica: m = m' = 8, p = 2, q = 40961.

        Returns:
            SHECryptographicParameters: Parâmetros para operações básicas
        """
        return cls(plaintext_index=8, plaintext_modulus=2, ciphertext_modulus=40961, **kwargs)

    @classmethod
    def ring_switch_config(cls, **kwargs):
        """
        Configuração com plaintext em um subanel: m = 4, m' = 8.

        Returns:
            SHECryptographicParameters: Parâmetros para troca de anel
        """
        return cls(
            plaintext_index=4,
            ciphertext_index=8,
            plaintext_modulus=2,
            ciphertext_modulus=40961,
            **kwargs,
        )

    @classmethod
    def modulus_switch_config(cls, **kwargs):
        """
        Configuração com módulo composto q = 40961 · 65537, adequada para
        rescale até 65537.

        Returns:
            SHECryptographicParameters: Parâmetros para troca de módulo
        """
        return cls(
            plaintext_index=8,
            plaintext_modulus=2,
            ciphertext_modulus=40961 * 65537,
            **kwargs,
        )

    def print_parameters_summary(self):
        """Imprime um resumo dos parâmetros configurados."""
        print("=== PARÂMETROS CRIPTOGRÁFICOS SHE ===")
        print(f"Índice do plaintext (m): {self.PLAINTEXT_INDEX}")
        print(f"Índice do ciphertext (m'): {self.CIPHERTEXT_INDEX}")
        print(f"Módulo do plaintext (p): {self.PLAINTEXT_MODULUS}")
        print(
            f"Módulo do ciphertext (q): {self.CIPHERTEXT_MODULUS} "
            f"(~{self.CIPHERTEXT_MODULUS.bit_length()} bits)"
        )
        print(
            f"Módulo das dicas (q'): {self.HINT_MODULUS} "
            f"(~{self.HINT_MODULUS.bit_length()} bits)"
        )
        print(f"Base do gadget (B): {self.GADGET_BASE}")
        print(f"Variância escalada (v): {self.VARIANCE}")
        print("=" * 37)

    # === AMOSTRAGEM ===
    @property
    def is_deterministic(self) -> bool:
        """True quando as amostras vêm do gerador numpy com semente."""
        return self._rng is not None

    def _gaussian(self, std: float, size: int) -> List[float]:
        if self._rng is None:
            return [self._system_random.gauss(0.0, float(std)) for _ in range(size)]
        return self._rng.normal(0.0, std, size=size).tolist()

    def generate_rounded_error(
        self, ring: CyclotomicRing, variance: Optional[float] = None
    ) -> RingElement:
        """
        Gera um erro gaussiano arredondado na base de decodificação.

        Cada coordenada é round(N(0, v)).

        Args:
            ring: Anel de destino (o resultado é reduzido se houver módulo)
            variance: Variância escalada (usa VARIANCE se None)

        Returns:
            RingElement: Erro amostrado
        """
        if variance is None:
            variance = self.VARIANCE
        samples = self._gaussian(np.sqrt(variance), ring.degree)
        coords = [int(np.rint(v)) for v in samples]
        return ring.from_decoding(coords)

    def generate_coset_error(
        self, coset: RingElement, variance: Optional[float] = None
    ) -> RingElement:
        """
        Gera um erro no coset c + pR, onde p é o módulo de coset.

        A amostra contínua tem variância v·p² e é arredondada, na base de
        decodificação, para o valor mais próximo congruente a c módulo p.

        Args:
            coset: Representante do coset (elemento de Z_p[x]/Φ_m)
            variance: Variância escalada (usa VARIANCE se None)

        Returns:
            RingElement: Erro sobre Z[x]/Φ_m no coset dado
        """
        if coset.modulus is None:
            raise ParameterMismatchError("O coset deve estar em um anel com módulo")
        if variance is None:
            variance = self.VARIANCE

        p = coset.modulus
        centers = mod_centered(coset.to_decoding(), p)
        samples = self._gaussian(p * np.sqrt(variance), coset.ring.degree)
        coords = [
            int(c) + p * int(np.rint((float(x) - int(c)) / p))
            for c, x in zip(centers, samples)
        ]
        return coset.ring.with_modulus(None).from_decoding(coords)

    def generate_uniform(self, ring: CyclotomicRing) -> RingElement:
        """
        Gera um elemento uniformemente aleatório de R_q.

        Args:
            ring: Anel com módulo

        Returns:
            RingElement: Elemento uniforme
        """
        if ring.modulus is None:
            raise ParameterMismatchError("Amostragem uniforme requer um anel com módulo")
        q = ring.modulus
        if self._rng is None:
            coeffs = [secrets.randbelow(q) for _ in range(ring.degree)]
        elif q < (1 << 62):
            coeffs = self._rng.integers(0, q, size=ring.degree).tolist()
        else:
            size = (q.bit_length() + 7) // 8 + 8
            coeffs = [
                int.from_bytes(self._rng.bytes(size), "little") % q
                for _ in range(ring.degree)
            ]
        return ring.element(coeffs)


if __name__ == "__main__":
    try:
        SHECryptographicParameters.basic_config().print_parameters_summary()
        SHECryptographicParameters.ring_switch_config().print_parameters_summary()
        print("\n✓ Todas as configurações são válidas!")
    except ValueError as e:
        print(f"✗ Erro na validação dos parâmetros: {e}")
