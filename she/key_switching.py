"""
Aplicação de dicas de key switching e tunneling de anel.

Uma dica para o valor v sob a chave s_out é uma lista de amostras LWE
(c0_i, c1_i) com c0_i + c1_i · s_out ≈ v · g_i, uma por entrada g_i do gadget.
A função switch troca um elemento c pela combinação Σ d_i · (c0_i, c1_i),
onde d são os dígitos de c no gadget, que avaliada em s_out resulta em
c · v mais um erro pequeno.
"""

import logging
from typing import List, Sequence

from .ciphertext import SHECiphertext
from .cyclotomic import POWERFUL_BASIS, RingElement
from .exceptions import ParameterMismatchError, PreconditionViolationError
from .linear import LinearMap

logger = logging.getLogger(__name__)

# Uma dica é uma lista de polinômios lineares [c0, c1]
Hint = List[List[RingElement]]


def switch(hint: Hint, gadget, element: RingElement) -> List[RingElement]:
    """
    Decompõe element no gadget e calcula a soma "knapsack" Σ d_i · hint_i.

    Args:
        hint: Dica com uma amostra por entrada do gadget
        gadget: Gadget usado para gerar a dica
        element: Elemento a ser trocado (no módulo do gadget)

    Returns:
        List[RingElement]: Polinômio linear [a0, a1]

    Raises:
        ParameterMismatchError: Se a dica e o gadget têm tamanhos diferentes
    """
    digits = gadget.decompose(element)
    if len(digits) != len(hint):
        raise ParameterMismatchError(
            f"Dica com {len(hint)} amostras para gadget de tamanho {len(digits)}"
        )
    zero = hint[0][0].ring.zero()
    a0, a1 = zero, zero
    for d, (h0, h1) in zip(digits, hint):
        a0 = a0 + d * h0
        a1 = a1 + d * h1
    return [a0, a1]


class _HintApplier:
    """Base comum: aplica uma dica a um coeficiente e volta ao módulo q."""

    def __init__(self, hint: Hint, gadget):
        if not hint:
            raise ParameterMismatchError("Dica vazia")
        self.hint = hint
        self.gadget = gadget

    @property
    def hint_modulus(self) -> int:
        return self.gadget.modulus

    @property
    def index(self) -> int:
        return self.hint[0][0].index

    def switch_down(self, element: RingElement, modulus: int) -> List[RingElement]:
        """rescalePow até q', switch, e rescale de volta a q (MSD)."""
        raised = element.rescale(self.hint_modulus, POWERFUL_BASIS)
        switched = switch(self.hint, self.gadget, raised)
        return SHECiphertext.rescale_linear_msd(switched, modulus)

    def _check_ciphertext(self, ct: SHECiphertext, size: int, name: str):
        if ct.size != size:
            raise PreconditionViolationError(
                f"{name} requer ciphertext com exatamente {size} componentes. "
                f"Recebido: {ct.size} componentes"
            )
        if ct.ciphertext_index != self.index:
            raise ParameterMismatchError(
                f"Ciphertext em R_{ct.ciphertext_index} e dica em R_{self.index}"
            )


class KeySwitchLinear(_HintApplier):
    """Troca um ciphertext linear sob s_in por um linear sob s_out."""

    def __call__(self, ct: SHECiphertext) -> SHECiphertext:
        self._check_ciphertext(ct, 2, "Key switching linear")
        ct = ct.to_msd()
        c0, c1 = ct.components
        d0, d1 = self.switch_down(c1, ct.modulus)
        logger.debug("Key switching linear em R_%d (q=%d)", ct.ciphertext_index, ct.modulus)
        return ct._replace(components=[c0 + d0, d1])


class KeySwitchQuadCirc(_HintApplier):
    """Relineariza um ciphertext de 3 componentes sob a mesma chave."""

    def __call__(self, ct: SHECiphertext) -> SHECiphertext:
        self._check_ciphertext(ct, 3, "Relinearização")
        ct = ct.to_msd()
        c0, c1, c2 = ct.components
        d0, d1 = self.switch_down(c2, ct.modulus)
        logger.debug("Relinearização em R_%d (q=%d)", ct.ciphertext_index, ct.modulus)
        return ct._replace(components=[c0 + d0, c1 + d1])


class RingTunnel:
    """
    Aplica homomorficamente uma função E-linear do plaintext em R para o
    plaintext em S, trocando o ciphertext de R' (chave s_in) para S'
    (chave s_out).

    Attributes:
        linear_map: Função estendida E'-linear R' -> S' reduzida módulo q
        hints: Uma dica por elemento da base powerful relativa de R'/E'
        plaintext_index: Índice r do plaintext de entrada
        target_plaintext_index: Índice s do plaintext de saída
    """

    def __init__(
        self,
        linear_map: LinearMap,
        hints: Sequence[Hint],
        gadget,
        plaintext_index: int,
        target_plaintext_index: int,
    ):
        if not hints:
            raise ParameterMismatchError("Tunneling requer pelo menos uma dica")
        self.linear_map = linear_map
        self.appliers = [_HintApplier(hint, gadget) for hint in hints]
        self.plaintext_index = plaintext_index
        self.target_plaintext_index = target_plaintext_index

    @property
    def source_index(self) -> int:
        return self.linear_map.r

    @property
    def target_index(self) -> int:
        return self.linear_map.s

    def __call__(self, ct: SHECiphertext) -> SHECiphertext:
        if ct.ciphertext_index != self.source_index or ct.plaintext_index != self.plaintext_index:
            raise ParameterMismatchError(
                f"Ciphertext (r={ct.plaintext_index}, r'={ct.ciphertext_index}) não corresponde "
                f"ao tunneling de (r={self.plaintext_index}, r'={self.source_index})"
            )
        if ct.modulus != self.linear_map.modulus:
            raise ParameterMismatchError(
                f"Ciphertext com q={ct.modulus} e função linear com q={self.linear_map.modulus}"
            )

        ct = ct.absorb_g_factors().to_msd()
        if ct.size != 2:
            raise PreconditionViolationError(
                f"Tunneling requer ciphertext com exatamente 2 componentes. "
                f"Recebido: {ct.size} componentes"
            )
        c0, c1 = ct.components

        # termo constante: função aplicada diretamente (pública)
        result0 = self.linear_map.evaluate(c0)

        # termo linear: um key switch por coeficiente da base relativa
        parts = c1.coeffs_relative(self.linear_map.e, POWERFUL_BASIS)
        if len(parts) != len(self.appliers):
            raise ParameterMismatchError(
                f"{len(parts)} componentes para {len(self.appliers)} dicas"
            )
        result1 = result0.ring.zero()
        for part, applier in zip(parts, self.appliers):
            d0, d1 = applier.switch_down(part.embed(self.target_index), ct.modulus)
            result0 = result0 + d0
            result1 = result1 + d1

        logger.debug(
            "Tunneling de R_%d para R_%d com %d dicas",
            self.source_index,
            self.target_index,
            len(self.appliers),
        )
        return SHECiphertext(
            encoding=ct.encoding,
            k=0,
            scale=ct.scale,
            components=[result0, result1],
            plaintext_index=self.target_plaintext_index,
            plaintext_modulus=ct.plaintext_modulus,
        )
