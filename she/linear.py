"""
Funções E-lineares entre anéis ciclotômicos, usadas no tunneling.

Uma função E-linear f: R -> S (e | r, e | s) é determinada pelas imagens
dos elementos da base de decodificação relativa de R/E.
"""

import logging
from math import gcd
from typing import Optional, Sequence

from .cyclotomic import (
    DECODING_BASIS,
    POWERFUL_BASIS,
    CyclotomicRing,
    RingElement,
    lcm,
)
from .exceptions import ParameterMismatchError

logger = logging.getLogger(__name__)


class LinearMap:
    """
    Função E-linear de R = O_r em S = O_s.

    Attributes:
        e: Índice do subanel comum E
        r: Índice do domínio R
        s: Índice do contradomínio S
        images: Imagens (em S) da base de decodificação relativa de R/E
    """

    def __init__(self, e: int, r: int, s: int, images: Sequence[RingElement]):
        if r % e != 0 or s % e != 0:
            raise ParameterMismatchError(
                f"Índice e={e} deve dividir r={r} e s={s}"
            )
        images = list(images)
        expected = len(CyclotomicRing(r).relative_decoding_basis(e))
        if len(images) != expected:
            raise ParameterMismatchError(
                f"Esperadas {expected} imagens para R_{r}/E_{e}, recebidas {len(images)}"
            )
        if any(img.index != s for img in images):
            raise ParameterMismatchError(f"Todas as imagens devem estar em R_{s}")
        if any(img.modulus != images[0].modulus for img in images):
            raise ParameterMismatchError("Todas as imagens devem ter o mesmo módulo")

        self.e = e
        self.r = r
        self.s = s
        self.images = images

    @property
    def modulus(self) -> Optional[int]:
        return self.images[0].modulus

    @classmethod
    def identity(cls, e: int, r: int, modulus: Optional[int] = None) -> "LinearMap":
        """Função identidade de R em R, vista como E-linear."""
        ring = CyclotomicRing(r, modulus)
        return cls(e, r, r, ring.relative_decoding_basis(e))

    def evaluate(self, value: RingElement) -> RingElement:
        """
        Aplica a função: f(x) = Σ embed(c_j) · f(d_j), com x = Σ c_j · d_j.

        Raises:
            ParameterMismatchError: Se value não está em R com o módulo das imagens
        """
        if value.index != self.r or value.modulus != self.modulus:
            raise ParameterMismatchError(
                f"Argumento em {value.ring} incompatível com a função "
                f"de R_{self.r} (módulo {self.modulus})"
            )
        coefficients = value.coeffs_relative(self.e, DECODING_BASIS)
        return sum(
            (c.embed(self.s) * image for c, image in zip(coefficients, self.images)),
            CyclotomicRing(self.s, self.modulus).zero(),
        )

    def lift(self) -> "LinearMap":
        """Levanta as imagens para Z (lift centrado na base powerful)."""
        return LinearMap(
            self.e, self.r, self.s, [img.lift(POWERFUL_BASIS) for img in self.images]
        )

    def reduce(self, modulus: int) -> "LinearMap":
        return LinearMap(self.e, self.r, self.s, [img.reduce(modulus) for img in self.images])

    def extend(self, r_prime: int, s_prime: int) -> "LinearMap":
        """
        Estende a função E-linear R -> S para E'-linear R' -> S', com
        e' = e · r'/r, mantendo as imagens da base relativa.

        Requer r | r', e = gcd(r, e'), r' = lcm(r, e'), s | s' e e' | s'.

        Raises:
            ParameterMismatchError: Se as relações entre índices não valem
        """
        if r_prime % self.r != 0:
            raise ParameterMismatchError(f"r={self.r} deve dividir r'={r_prime}")
        e_prime = self.e * (r_prime // self.r)
        if (
            gcd(self.r, e_prime) != self.e
            or lcm(self.r, e_prime) != r_prime
            or s_prime % self.s != 0
            or s_prime % e_prime != 0
        ):
            raise ParameterMismatchError(
                f"Não é possível estender a função (e={self.e}, r={self.r}, s={self.s}) "
                f"para (e'={e_prime}, r'={r_prime}, s'={s_prime})"
            )
        logger.debug("Estendendo função linear para e'=%d, r'=%d, s'=%d", e_prime, r_prime, s_prime)
        return LinearMap(e_prime, r_prime, s_prime, [img.embed(s_prime) for img in self.images])
