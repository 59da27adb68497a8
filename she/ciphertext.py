"""
Classe para representar ciphertexts do esquema SHE simétrico.

Um ciphertext sobre R'_q cifra um plaintext de R_p (R = O_m, m | m') e
guarda, além dos coeficientes do polinômio c(S), a codificação (MSD/LSD),
o expoente k de g ainda não absorvido e o fator de escala l ∈ Z_p aplicado
na descriptografia.
"""

import logging
from enum import Enum
from math import gcd
from typing import List, Sequence, Tuple

from .cyclotomic import (
    DECODING_BASIS,
    POWERFUL_BASIS,
    CyclotomicRing,
    RingElement,
)
from .exceptions import ParameterMismatchError, PreconditionViolationError

logger = logging.getLogger(__name__)


class Encoding(Enum):
    """Codificação do polinômio do ciphertext."""

    MSD = "MSD"
    LSD = "LSD"


def encoding_constants(
    plaintext_modulus: int, ciphertext_modulus: int
) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    """
    Constantes de conversão entre as codificações LSD e MSD.

    LSD -> MSD multiplica l por (-q mod p) e os coeficientes por p^(-1) mod q;
    MSD -> LSD usa os inversos dessas constantes.

    Returns:
        Tuple: ((zp_scale, zq_scale) de LSD para MSD, (zp_scale, zq_scale) de MSD para LSD)

    Raises:
        ParameterMismatchError: Se p e q não forem coprimos
    """
    p, q = plaintext_modulus, ciphertext_modulus
    if gcd(p, q) != 1:
        raise ParameterMismatchError(f"p={p} e q={q} devem ser coprimos")
    neg_q = (-q) % p
    lsd_to_msd = (neg_q, pow(p, -1, q))
    msd_to_lsd = (pow(neg_q, -1, p), p % q)
    return lsd_to_msd, msd_to_lsd


class SHECiphertext:
    """
    Classe que representa um ciphertext do esquema SHE.

    Attributes:
        encoding: Codificação MSD ou LSD
        k: Número de multiplicações por g ainda não absorvidas
        scale: Fator l ∈ Z_p aplicado na descriptografia
        components: Coeficientes (1 a 3) do polinômio c(S) sobre R'_q
        plaintext_index: Índice m do anel de plaintext
        plaintext_modulus: Módulo p do plaintext
    """

    def __init__(
        self,
        encoding: Encoding,
        k: int,
        scale: int,
        components: Sequence[RingElement],
        plaintext_index: int,
        plaintext_modulus: int,
    ):
        """
        Inicializa um novo ciphertext SHE.

        Raises:
            ValueError: Se os parâmetros estiverem inválidos
        """
        components = list(components)
        self._validate_initialization_params(components, plaintext_index, plaintext_modulus)

        self.encoding = encoding
        self.k = int(k)
        self.scale = int(scale) % plaintext_modulus
        self.components = tuple(components)
        self.plaintext_index = plaintext_index
        self.plaintext_modulus = plaintext_modulus

    @staticmethod
    def _validate_initialization_params(
        components: List[RingElement], plaintext_index: int, plaintext_modulus: int
    ):
        """Valida os parâmetros de inicialização."""
        if not 1 <= len(components) <= 3:
            raise PreconditionViolationError(
                f"Ciphertext deve ter entre 1 e 3 componentes, recebido: {len(components)}"
            )
        if not all(isinstance(c, RingElement) for c in components):
            raise ValueError("Todos os componentes devem ser instâncias de RingElement")

        ring = components[0].ring
        if any(c.ring != ring for c in components):
            raise ParameterMismatchError("Todos os componentes devem estar no mesmo anel")
        if ring.modulus is None:
            raise ParameterMismatchError("Componentes devem estar em um anel com módulo q")
        if ring.index % plaintext_index != 0:
            raise ParameterMismatchError(
                f"Índice do plaintext {plaintext_index} deve dividir "
                f"o índice do ciphertext {ring.index}"
            )
        if plaintext_modulus < 2:
            raise ParameterMismatchError(
                f"Módulo do plaintext deve ser >= 2, recebido: {plaintext_modulus}"
            )

    @classmethod
    def zero(cls, ring: CyclotomicRing, plaintext_index: int, plaintext_modulus: int):
        """Cifração trivial de 0."""
        return cls(Encoding.LSD, 0, 1, [ring.zero()], plaintext_index, plaintext_modulus)

    @classmethod
    def one(cls, ring: CyclotomicRing, plaintext_index: int, plaintext_modulus: int):
        """Cifração trivial de 1."""
        return cls(Encoding.LSD, 0, 1, [ring.one()], plaintext_index, plaintext_modulus)

    # === PROPRIEDADES ===
    @property
    def ring(self) -> CyclotomicRing:
        return self.components[0].ring

    @property
    def modulus(self) -> int:
        """Módulo q atual do ciphertext."""
        return self.ring.modulus

    @property
    def ciphertext_index(self) -> int:
        return self.ring.index

    @property
    def size(self) -> int:
        """Retorna o número de componentes do ciphertext."""
        return len(self.components)

    def get_component(self, index: int) -> RingElement:
        """
        Retorna um componente específico do ciphertext.

        Raises:
            IndexError: Se o índice estiver fora do alcance
        """
        if index < 0 or index >= len(self.components):
            raise IndexError(
                f"Índice {index} fora do alcance. Ciphertext tem {len(self.components)} componentes."
            )
        return self.components[index]

    def _replace(self, **changes) -> "SHECiphertext":
        fields = {
            "encoding": self.encoding,
            "k": self.k,
            "scale": self.scale,
            "components": self.components,
            "plaintext_index": self.plaintext_index,
            "plaintext_modulus": self.plaintext_modulus,
        }
        fields.update(changes)
        return SHECiphertext(**fields)

    def copy(self) -> "SHECiphertext":
        return self._replace(components=list(self.components))

    def __eq__(self, other):
        if not isinstance(other, SHECiphertext):
            return NotImplemented
        return (
            self.encoding == other.encoding
            and self.k == other.k
            and self.scale == other.scale
            and self.plaintext_index == other.plaintext_index
            and self.plaintext_modulus == other.plaintext_modulus
            and self.components == other.components
        )

    __hash__ = None

    def __repr__(self):
        return (
            f"SHECiphertext({self.encoding.value}, k={self.k}, l={self.scale}, "
            f"size={self.size}, {self.ring}, m={self.plaintext_index}, "
            f"p={self.plaintext_modulus})"
        )

    def print_summary(self):
        """Imprime um resumo do ciphertext."""
        print("=== RESUMO DO CIPHERTEXT SHE ===")
        print(f"Codificação: {self.encoding.value}")
        print(f"Número de componentes: {self.size}")
        print(f"Expoente de g (k): {self.k}")
        print(f"Escala (l): {self.scale} mod {self.plaintext_modulus}")
        print(f"Anel do plaintext: m={self.plaintext_index}, p={self.plaintext_modulus}")
        print(
            f"Anel do ciphertext: m'={self.ciphertext_index}, q={self.modulus} "
            f"(~{self.modulus.bit_length()} bits)"
        )
        print("=" * 32)

    def evaluate(self, secret: RingElement) -> RingElement:
        """Avalia c(S) em S = secret (regra de Horner)."""
        if secret.ring != self.ring:
            raise ParameterMismatchError(
                f"Segredo em {secret.ring} não corresponde ao ciphertext em {self.ring}"
            )
        result = self.components[-1]
        for coeff in reversed(self.components[:-1]):
            result = result * secret + coeff
        return result

    # === CODIFICAÇÃO ===
    def to_msd(self) -> "SHECiphertext":
        """Converte para a codificação MSD (no-op se já estiver em MSD)."""
        if self.encoding == Encoding.MSD:
            return self
        (zp_scale, zq_scale), _ = encoding_constants(self.plaintext_modulus, self.modulus)
        return self._replace(
            encoding=Encoding.MSD,
            scale=zp_scale * self.scale,
            components=[c * zq_scale for c in self.components],
        )

    def to_lsd(self) -> "SHECiphertext":
        """Converte para a codificação LSD (no-op se já estiver em LSD)."""
        if self.encoding == Encoding.LSD:
            return self
        _, (zp_scale, zq_scale) = encoding_constants(self.plaintext_modulus, self.modulus)
        return self._replace(
            encoding=Encoding.LSD,
            scale=zp_scale * self.scale,
            components=[c * zq_scale for c in self.components],
        )

    # === ARITMÉTICA HOMOMÓRFICA ===
    @staticmethod
    def _check_compatible(ct1: "SHECiphertext", ct2: "SHECiphertext"):
        if ct1.ring != ct2.ring:
            raise ParameterMismatchError(
                f"Ciphertexts em anéis diferentes: {ct1.ring} e {ct2.ring}"
            )
        if (ct1.plaintext_index, ct1.plaintext_modulus) != (
            ct2.plaintext_index,
            ct2.plaintext_modulus,
        ):
            raise ParameterMismatchError(
                "Ciphertexts com anéis de plaintext diferentes: "
                f"(m={ct1.plaintext_index}, p={ct1.plaintext_modulus}) e "
                f"(m={ct2.plaintext_index}, p={ct2.plaintext_modulus})"
            )

    def negate(self) -> "SHECiphertext":
        return self._replace(components=[-c for c in self.components])

    def __neg__(self):
        return self.negate()

    def mul_g(self, times: int = 1) -> "SHECiphertext":
        """
        Incrementa o expoente de g sem alterar a mensagem cifrada.

        Args:
            times: Quantas vezes multiplicar por g
        """
        components = self.components
        for _ in range(times):
            components = [c.mul_g() for c in components]
        return self._replace(k=self.k + times, components=components)

    @staticmethod
    def add_homomorphic(ct1: "SHECiphertext", ct2: "SHECiphertext") -> "SHECiphertext":
        """
        Realiza adição homomórfica entre dois ciphertexts.

        Os expoentes de g são igualados multiplicando o operando de menor k
        por g; se as codificações diferem, o operando LSD é convertido para
        MSD. Coeficientes são somados ponto a ponto.

        Raises:
            PreconditionViolationError: Se as escalas l forem diferentes
            ParameterMismatchError: Se os anéis forem diferentes
        """
        SHECiphertext._check_compatible(ct1, ct2)
        if ct1.scale != ct2.scale:
            raise PreconditionViolationError(
                f"Não é possível somar ciphertexts com escalas diferentes: "
                f"{ct1.scale} e {ct2.scale}"
            )

        if ct1.k < ct2.k:
            ct1 = ct1.mul_g(ct2.k - ct1.k)
        elif ct1.k > ct2.k:
            ct2 = ct2.mul_g(ct1.k - ct2.k)

        if ct1.encoding != ct2.encoding:
            ct1, ct2 = ct1.to_msd(), ct2.to_msd()
            if ct1.scale != ct2.scale:
                raise PreconditionViolationError(
                    f"Escalas diferentes após conversão para MSD: {ct1.scale} e {ct2.scale}"
                )

        size = max(ct1.size, ct2.size)
        zero = ct1.ring.zero()
        c1 = list(ct1.components) + [zero] * (size - ct1.size)
        c2 = list(ct2.components) + [zero] * (size - ct2.size)
        return ct1._replace(components=[a + b for a, b in zip(c1, c2)])

    def __add__(self, other):
        if not isinstance(other, SHECiphertext):
            return NotImplemented
        return SHECiphertext.add_homomorphic(self, other)

    def __sub__(self, other):
        if not isinstance(other, SHECiphertext):
            return NotImplemented
        return SHECiphertext.add_homomorphic(self, other.negate())

    @staticmethod
    def multiply_homomorphic(ct1: "SHECiphertext", ct2: "SHECiphertext") -> "SHECiphertext":
        """
        Realiza multiplicação homomórfica.

        Pelo menos um operando precisa estar em LSD; se ambos estão em MSD, o
        primeiro é convertido. Sendo c1 o operando LSD e c2 o outro:

            c = g · (c1 * c2),  k = k1 + k2 + 1,  l = l1 · l2

        e a codificação do resultado é a do operando não convertido. Dois
        ciphertexts lineares produzem um resultado de 3 componentes, que
        precisa de key switching antes de uma nova multiplicação.

        Raises:
            PreconditionViolationError: Se o resultado tiver mais de 3 componentes
        """
        SHECiphertext._check_compatible(ct1, ct2)
        if ct1.size + ct2.size - 1 > 3:
            raise PreconditionViolationError(
                f"Multiplicação resultaria em {ct1.size + ct2.size - 1} componentes; "
                "aplique key switching antes"
            )

        if ct1.encoding == Encoding.MSD and ct2.encoding == Encoding.MSD:
            ct1 = ct1.to_lsd()

        if ct1.encoding == Encoding.LSD:
            lsd, other = ct1, ct2
        else:
            lsd, other = ct2, ct1

        zero = lsd.ring.zero()
        product = [zero] * (lsd.size + other.size - 1)
        for i, a in enumerate(lsd.components):
            for j, b in enumerate(other.components):
                product[i + j] = product[i + j] + a * b

        return SHECiphertext(
            encoding=other.encoding,
            k=lsd.k + other.k + 1,
            scale=lsd.scale * other.scale,
            components=[c.mul_g() for c in product],
            plaintext_index=lsd.plaintext_index,
            plaintext_modulus=lsd.plaintext_modulus,
        )

    def __mul__(self, other):
        if not isinstance(other, SHECiphertext):
            return NotImplemented
        return SHECiphertext.multiply_homomorphic(self, other)

    # === OPERAÇÕES COM VALORES PÚBLICOS ===
    def _scale_inverse(self) -> int:
        try:
            return pow(self.scale, -1, self.plaintext_modulus)
        except ValueError:
            raise PreconditionViolationError(
                f"Escala {self.scale} não é invertível módulo {self.plaintext_modulus}"
            ) from None

    def _public_to_constant(self, value: RingElement) -> RingElement:
        """value ∈ R'_p -> l^(-1) · g^k · value, levantado e reduzido para R'_q."""
        value = value * self._scale_inverse()
        for _ in range(self.k):
            value = value.mul_g()
        return value.lift(POWERFUL_BASIS).reduce(self.modulus)

    def add_scalar(self, value: int) -> "SHECiphertext":
        """Soma homomorficamente um valor público de Z_p."""
        ct = self.to_lsd()
        ring_p = CyclotomicRing(ct.ciphertext_index, ct.plaintext_modulus)
        constant = ct._public_to_constant(ring_p.scalar(value))
        return ct._replace(components=[ct.components[0] + constant, *ct.components[1:]])

    def _check_public(self, value: RingElement):
        if value.index != self.plaintext_index or value.modulus != self.plaintext_modulus:
            raise ParameterMismatchError(
                f"Valor público em {value.ring} não pertence ao anel de plaintext "
                f"(m={self.plaintext_index}, p={self.plaintext_modulus})"
            )

    def add_public(self, value: RingElement) -> "SHECiphertext":
        """Soma homomorficamente um elemento público de R_p."""
        self._check_public(value)
        ct = self.to_lsd()
        constant = ct._public_to_constant(value.embed(ct.ciphertext_index))
        return ct._replace(components=[ct.components[0] + constant, *ct.components[1:]])

    def mul_public(self, value: RingElement) -> "SHECiphertext":
        """Multiplica homomorficamente por um elemento público de R_p (qualquer codificação)."""
        self._check_public(value)
        factor = value.lift(POWERFUL_BASIS).reduce(self.modulus).embed(self.ciphertext_index)
        return self._replace(components=[c * factor for c in self.components])

    # === TROCA DE MÓDULO ===
    @staticmethod
    def rescale_linear_msd(components: Sequence[RingElement], modulus: int) -> List[RingElement]:
        """
        Rescale de um polinômio linear em MSD.

        O termo constante é arredondado na base de decodificação e o termo
        linear na base powerful.

        Raises:
            PreconditionViolationError: Se o polinômio não for linear
        """
        if len(components) == 1:
            return [components[0].rescale(modulus, DECODING_BASIS)]
        if len(components) == 2:
            return [
                components[0].rescale(modulus, DECODING_BASIS),
                components[1].rescale(modulus, POWERFUL_BASIS),
            ]
        raise PreconditionViolationError(
            f"Rescale requer polinômio linear; recebido {len(components)} componentes"
        )

    def rescale_linear(self, modulus: int) -> "SHECiphertext":
        """
        Troca o módulo do ciphertext de q para modulus.

        Raises:
            PreconditionViolationError: Se o ciphertext tiver 3 componentes
            ParameterMismatchError: Se modulus não for coprimo com p
        """
        if gcd(modulus, self.plaintext_modulus) != 1:
            raise ParameterMismatchError(
                f"Novo módulo {modulus} deve ser coprimo com p={self.plaintext_modulus}"
            )
        ct = self.to_msd()
        logger.debug("Rescale linear de q=%d para q=%d", ct.modulus, modulus)
        return ct._replace(components=SHECiphertext.rescale_linear_msd(ct.components, modulus))

    def mod_switch_plaintext(self, plaintext_modulus: int) -> "SHECiphertext":
        """
        Divide homomorficamente o plaintext por p/p', trocando o módulo de
        plaintext de p para p'. Supõe (sem verificar) que a mensagem é
        múltipla de p/p'.

        Raises:
            ParameterMismatchError: Se p' não divide p
        """
        if self.plaintext_modulus % plaintext_modulus != 0:
            raise ParameterMismatchError(
                f"Novo módulo de plaintext {plaintext_modulus} deve dividir "
                f"p={self.plaintext_modulus}"
            )
        ct = self.to_msd()
        return ct._replace(scale=ct.scale % plaintext_modulus, plaintext_modulus=plaintext_modulus)

    # === TROCA DE ANEL ===
    def absorb_g_factors(self) -> "SHECiphertext":
        """
        Absorve os fatores de g pendentes multiplicando por um representante
        de g^(-k) e zera k. Aumenta o ruído.

        Raises:
            PreconditionViolationError: Se k < 0 ou g não for invertível em R'_p
        """
        if self.k == 0:
            return self
        if self.k < 0:
            raise PreconditionViolationError(f"k < 0 em absorb_g_factors: {self.k}")

        inverse = CyclotomicRing(self.ciphertext_index, self.plaintext_modulus).one()
        for _ in range(self.k):
            inverse = inverse.div_g()
            if inverse is None:
                raise PreconditionViolationError(
                    f"g não é invertível em R_{self.ciphertext_index} módulo {self.plaintext_modulus}"
                )
        representative = inverse.lift(POWERFUL_BASIS).reduce(self.modulus)
        logger.debug("Absorvendo g^%d", self.k)
        return self._replace(k=0, components=[c * representative for c in self.components])

    def _require_round(self, operation: str):
        if self.k != 0:
            raise PreconditionViolationError(
                f"{operation} requer k == 0 (recebido k={self.k}); chame absorb_g_factors antes"
            )

    def embed(self, plaintext_index: int, ciphertext_index: int) -> "SHECiphertext":
        """
        Imerge um ciphertext de R' (plaintext em R) em T' (plaintext em T).

        Requer r | s, r' | s' e s | s'.

        Raises:
            PreconditionViolationError: Se k != 0
            ParameterMismatchError: Se as relações de divisibilidade não valem
        """
        self._require_round("embed")
        if (
            plaintext_index % self.plaintext_index != 0
            or ciphertext_index % self.ciphertext_index != 0
            or ciphertext_index % plaintext_index != 0
        ):
            raise ParameterMismatchError(
                f"Embed inválido de (r={self.plaintext_index}, r'={self.ciphertext_index}) "
                f"para (s={plaintext_index}, s'={ciphertext_index})"
            )
        logger.debug(
            "Embed do ciphertext de R_%d para R_%d", self.ciphertext_index, ciphertext_index
        )
        return self._replace(
            components=[c.embed(ciphertext_index) for c in self.components],
            plaintext_index=plaintext_index,
        )

    def twace(self, ciphertext_index: int) -> "SHECiphertext":
        """
        Aplica o traço "tweaked" aos coeficientes, projetando R'_q em S'_q.

        O índice do plaintext resultante é s = gcd(s', r).

        Raises:
            PreconditionViolationError: Se k != 0
            ParameterMismatchError: Se s' não divide r'
        """
        self._require_round("twace")
        if self.ciphertext_index % ciphertext_index != 0:
            raise ParameterMismatchError(
                f"Twace requer {ciphertext_index} | {self.ciphertext_index}"
            )
        logger.debug(
            "Twace do ciphertext de R_%d para R_%d", self.ciphertext_index, ciphertext_index
        )
        return self._replace(
            components=[c.twace(ciphertext_index) for c in self.components],
            plaintext_index=gcd(ciphertext_index, self.plaintext_index),
        )
