"""
Gadgets para decomposição de elementos de anel no key switching.

Um gadget é um vetor fixo (g_1, ..., g_n) de elementos de R_q' junto com
uma decomposição d = (d_1, ..., d_n) de dígitos pequenos tal que
Σ d_i · g_i == c.
"""

from typing import List

from .cyclotomic import RingElement, mod_centered
from .exceptions import ParameterMismatchError


class BaseBGadget:
    """
    Gadget (1, B, B², ..., B^(L-1)) sobre Z_q'.

    A decomposição usa dígitos balanceados em [-B/2, B/2] das coordenadas
    centradas na base powerful. No empate |d| = B/2 o dígito leva o sinal
    do resíduo.
    """

    def __init__(self, base: int, modulus: int):
        if base < 2:
            raise ParameterMismatchError(f"Base do gadget deve ser >= 2, recebido: {base}")
        self.base = base
        self.modulus = modulus

        # B^L >= q' com um dígito extra para o vai-um dos dígitos balanceados
        length = 1
        while base**length < modulus:
            length += 1
        self.length = length + 1

    def __len__(self):
        return self.length

    def vector(self) -> List[int]:
        """Entradas escalares do gadget."""
        return [self.base**i for i in range(self.length)]

    def _digit(self, residual: int) -> int:
        digit = mod_centered(residual, self.base)
        if 2 * digit == self.base and residual < 0:
            return -digit
        return digit

    def decompose(self, element: RingElement) -> List[RingElement]:
        """
        Decompõe um elemento de R_q' em L dígitos pequenos.

        Args:
            element: Elemento com módulo igual ao do gadget

        Returns:
            List[RingElement]: Dígitos d_i com Σ d_i · B^i == element

        Raises:
            ParameterMismatchError: Se o módulo do elemento difere do gadget
        """
        if element.modulus != self.modulus:
            raise ParameterMismatchError(
                f"Elemento em Z_{element.modulus} não pode ser decomposto "
                f"pelo gadget sobre Z_{self.modulus}"
            )
        residuals = [int(c) for c in mod_centered(element.to_powerful(), self.modulus)]
        digits = []
        for _ in range(self.length):
            current = [self._digit(r) for r in residuals]
            residuals = [(r - d) // self.base for r, d in zip(residuals, current)]
            digits.append(element.ring.from_powerful(current))
        if any(residuals):
            raise ParameterMismatchError("Decomposição do gadget não é exata")
        return digits


class TrivialGadget:
    """Gadget (1,): a decomposição é o próprio lift centrado."""

    def __init__(self, modulus: int):
        self.modulus = modulus
        self.length = 1

    def __len__(self):
        return 1

    def vector(self) -> List[int]:
        return [1]

    def decompose(self, element: RingElement) -> List[RingElement]:
        if element.modulus != self.modulus:
            raise ParameterMismatchError(
                f"Elemento em Z_{element.modulus} não pode ser decomposto "
                f"pelo gadget sobre Z_{self.modulus}"
            )
        return [element]
