"""
Aritmética em anéis ciclotômicos R_q = Z_q[x]/(Φ_m(x)).

Este módulo fornece os elementos de anel usados pelo esquema SHE:

- Armazenamento na base de potências x^i, 0 <= i < φ(m)
- Base "powerful" (produto tensorial das bases de potências dos fatores
  primos-potência) e base de decodificação (transformação L_p em cada
  primo ímpar)
- Elemento distinto g_m = Π_{p | m, p ímpar} (1 - ζ_p), com multiplicação
  e divisão exata (parcial)
- embed / twace entre anéis com índices em relação de divisibilidade
- Lift centrado, redução e rescale de módulo dependente da base

Os coeficientes são inteiros Python guardados em arrays numpy de dtype
object, o que permite módulos de tamanho arbitrário. As matrizes de
mudança de base dependem apenas do índice e são calculadas uma única vez.
"""

import itertools
import logging
from functools import lru_cache
from math import gcd
from typing import List, Optional, Sequence, Tuple

import numpy as np
from sympy import Matrix, cyclotomic_poly, factorint, totient

from .exceptions import ParameterMismatchError

logger = logging.getLogger(__name__)

POWERFUL_BASIS = "powerful"
DECODING_BASIS = "decoding"


def mod_centered(value, modulus):
    """
    Reduz value para o intervalo centrado ℤ_q = (-q/2, q/2].

    Aceita escalares ou arrays (o resultado é um array de dtype object).
    """
    if np.ndim(value) == 0:
        reduced = int(value) % modulus
        if reduced > modulus // 2:
            return reduced - modulus
        return reduced
    return np.array([mod_centered(v, modulus) for v in value], dtype=object)


def round_div(numerator: int, denominator: int) -> int:
    """Divisão inteira com arredondamento para o inteiro mais próximo."""
    return (2 * numerator + denominator) // (2 * denominator)


def lcm(a: int, b: int) -> int:
    return a * b // gcd(a, b)


# === ESTRUTURA DO ÍNDICE ===
@lru_cache(maxsize=None)
def prime_power_factors(index: int) -> Tuple[Tuple[int, int], ...]:
    """Fatoração de m como ((p1, e1), (p2, e2), ...) em ordem crescente."""
    return tuple((int(p), int(e)) for p, e in sorted(factorint(index).items()))


@lru_cache(maxsize=None)
def euler_phi(index: int) -> int:
    return int(totient(index))


@lru_cache(maxsize=None)
def cyclotomic_coefficients(index: int) -> Tuple[int, ...]:
    """Coeficientes de Φ_m(x), do termo constante ao termo líder."""
    poly = cyclotomic_poly(index, polys=True)
    return tuple(int(c) for c in reversed(poly.all_coeffs()))


def _zeros(size: int) -> np.ndarray:
    return np.array([0] * size, dtype=object)


def _reduce_poly(coeffs: Sequence[int], index: int) -> np.ndarray:
    """Reduz um polinômio módulo Φ_m usando primeiro x^m = 1."""
    degree = euler_phi(index)
    folded = _zeros(index)
    for i, c in enumerate(coeffs):
        folded[i % index] += int(c)

    phi = np.array(cyclotomic_coefficients(index), dtype=object)
    for d in range(index - 1, degree - 1, -1):
        c = folded[d]
        if c != 0:
            folded[d - degree : d + 1] -= c * phi
    return folded[:degree].copy()


def _monomial(exponent: int, index: int) -> np.ndarray:
    coeffs = _zeros(index)
    coeffs[exponent % index] = 1
    return _reduce_poly(coeffs, index)


def _multiply(a: np.ndarray, b: np.ndarray, index: int) -> np.ndarray:
    """Produto de dois vetores na base de potências, reduzido módulo Φ_m."""
    n = len(a)
    product = _zeros(2 * n - 1)
    for i, c in enumerate(a):
        if c != 0:
            product[i : i + n] += c * b
    return _reduce_poly(product, index)


def _automorphism(coeffs: np.ndarray, power: int, index: int) -> np.ndarray:
    """Automorfismo de Galois x -> x^power."""
    image = _zeros(index)
    for j, c in enumerate(coeffs):
        image[(power * j) % index] += c
    return _reduce_poly(image, index)


def _integer_matrix(rows) -> np.ndarray:
    return np.array([[int(v) for v in row] for row in rows], dtype=object)


def _integer_inverse(matrix: np.ndarray) -> np.ndarray:
    inverse = Matrix(matrix.tolist()).inv()
    if not all(v.is_integer for v in inverse):
        raise ParameterMismatchError("Matriz de mudança de base não é unimodular")
    return _integer_matrix(inverse.tolist())


# === MATRIZES DE MUDANÇA DE BASE ===
@lru_cache(maxsize=None)
def powerful_to_power(index: int) -> np.ndarray:
    """Colunas: base powerful Π ζ_{m_i}^{j_i} escrita na base de potências."""
    factors = prime_power_factors(index)
    ranges = [range(euler_phi(p**e)) for p, e in factors]
    columns = []
    for exponents in itertools.product(*ranges):
        exponent = sum(
            j * (index // p**e) for j, (p, e) in zip(exponents, factors)
        )
        columns.append(_monomial(exponent, index))
    return np.array(columns, dtype=object).T


@lru_cache(maxsize=None)
def power_to_powerful(index: int) -> np.ndarray:
    return _integer_inverse(powerful_to_power(index))


@lru_cache(maxsize=None)
def decoding_to_powerful(index: int) -> np.ndarray:
    """Produto tensorial de L_p ⊗ I_{p^(e-1)}; L_p é triangular inferior de uns."""
    result = np.ones((1, 1), dtype=np.int64)
    for p, e in prime_power_factors(index):
        lp = np.tril(np.ones((p - 1, p - 1), dtype=np.int64))
        local = np.kron(lp, np.eye(p ** (e - 1), dtype=np.int64))
        result = np.kron(result, local)
    return _integer_matrix(result.tolist())


@lru_cache(maxsize=None)
def decoding_to_power(index: int) -> np.ndarray:
    return np.dot(powerful_to_power(index), decoding_to_powerful(index))


@lru_cache(maxsize=None)
def power_to_decoding(index: int) -> np.ndarray:
    return _integer_inverse(decoding_to_power(index))


def _basis_matrices(index: int, basis: str) -> Tuple[np.ndarray, np.ndarray]:
    """Retorna (base -> potências, potências -> base)."""
    if basis == POWERFUL_BASIS:
        return powerful_to_power(index), power_to_powerful(index)
    if basis == DECODING_BASIS:
        return decoding_to_power(index), power_to_decoding(index)
    raise ValueError(f"Base desconhecida: {basis}")


# === ELEMENTO g ===
@lru_cache(maxsize=None)
def g_coefficients(index: int) -> Tuple[int, ...]:
    g = _monomial(0, index)
    for p, _ in prime_power_factors(index):
        if p != 2:
            factor = _monomial(0, index) - _monomial(index // p, index)
            g = _multiply(g, factor, index)
    return tuple(int(c) for c in g)


@lru_cache(maxsize=None)
def mul_g_matrix(index: int) -> np.ndarray:
    g = np.array(g_coefficients(index), dtype=object)
    degree = euler_phi(index)
    columns = [_multiply(g, _monomial(i, index), index) for i in range(degree)]
    return np.array(columns, dtype=object).T


@lru_cache(maxsize=None)
def _div_g_matrix_mod(index: int, modulus: int) -> Optional[np.ndarray]:
    try:
        inverse = Matrix(mul_g_matrix(index).tolist()).inv_mod(modulus)
    except ValueError:
        logger.debug("g não é invertível em R_%d módulo %d", index, modulus)
        return None
    return _integer_matrix(inverse.tolist())


@lru_cache(maxsize=None)
def _div_g_matrix_rational(index: int) -> Matrix:
    return Matrix(mul_g_matrix(index).tolist()).inv()


# === EMBED / TWACE ===
@lru_cache(maxsize=None)
def embed_matrix(source: int, target: int) -> np.ndarray:
    """Matriz (φ(target) x φ(source)) de ζ_r -> ζ_s^(s/r)."""
    step = target // source
    columns = [_monomial(i * step, target) for i in range(euler_phi(source))]
    return np.array(columns, dtype=object).T


def _m_hat(index: int) -> int:
    return index // 2 if index % 2 == 0 else index


@lru_cache(maxsize=None)
def twace_matrix(source: int, target: int) -> np.ndarray:
    """
    Matriz (φ(target) x φ(source)) do traço "tweaked".

    Tw(x) = (m̂_r / m̂_s) · Tr_{s/r}((g_s / g_r) · x), com r = target, s = source.
    """
    # g_s / g_r: fatores (1 - ζ_p) dos primos ímpares de s que não dividem r
    quotient = _monomial(0, source)
    for p, _ in prime_power_factors(source):
        if p != 2 and target % p != 0:
            factor = _monomial(0, source) - _monomial(source // p, source)
            quotient = _multiply(quotient, factor, source)

    galois = [
        a for a in range(1, source + 1)
        if gcd(a, source) == 1 and (a - 1) % target == 0
    ]
    embedding = Matrix(embed_matrix(target, source).tolist())
    numerator, denominator = _m_hat(target), _m_hat(source)

    columns = []
    for i in range(euler_phi(source)):
        tweaked = _multiply(quotient, _monomial(i, source), source)
        trace = _zeros(euler_phi(source))
        for a in galois:
            trace = trace + _automorphism(tweaked, a, source)
        solution, _ = embedding.gauss_jordan_solve(Matrix(trace.tolist()))
        column = [v * numerator / denominator for v in solution]
        if not all(v.is_integer for v in column):
            raise ParameterMismatchError(
                f"Twace de R_{source} para R_{target} não é inteiro"
            )
        columns.append([int(v) for v in column])
    return _integer_matrix(columns).T


# === BASES RELATIVAS ===
def _relative_basis_exponents(index: int, sub_index: int, basis: str) -> List[List[int]]:
    """
    Base relativa de O_m sobre O_e, cada elemento como soma de monômios.

    Para cada primo p com p^a || m e p^b || e: se b > 0 os elementos são
    ζ_{p^a}^j, j < p^(a-b); se b == 0 é a base powerful ou de decodificação
    de O_{p^a}.
    """
    elements = [[0]]
    sub_factors = dict(prime_power_factors(sub_index))
    for p, a in prime_power_factors(index):
        b = sub_factors.get(p, 0)
        step = index // p**a
        if b > 0:
            local = [[j * step] for j in range(p ** (a - b))]
        elif basis == DECODING_BASIS:
            inner = p ** (a - 1)
            local = [
                [(i * inner + low) * step for i in range(high, p - 1)]
                for high in range(p - 1)
                for low in range(inner)
            ]
        else:
            local = [[j * step] for j in range(euler_phi(p**a))]
        elements = [
            [x + y for x in first for y in second]
            for first in elements
            for second in local
        ]
    return elements


@lru_cache(maxsize=None)
def relative_basis(index: int, sub_index: int, basis: str) -> Tuple[Tuple[int, ...], ...]:
    vectors = []
    for exponents in _relative_basis_exponents(index, sub_index, basis):
        vector = _zeros(euler_phi(index))
        for exponent in exponents:
            vector = vector + _monomial(exponent, index)
        vectors.append(tuple(int(c) for c in vector))
    return tuple(vectors)


@lru_cache(maxsize=None)
def relative_coefficients_matrix(index: int, sub_index: int, basis: str) -> np.ndarray:
    """
    Inversa da matriz cujas colunas são embed(b_i) · rel_j (j externo, i interno),
    onde b_i percorre a base powerful de O_e.
    """
    sub_powerful = powerful_to_power(sub_index).T
    embedding = embed_matrix(sub_index, index)
    columns = []
    for rel in relative_basis(index, sub_index, basis):
        rel_vector = np.array(rel, dtype=object)
        for b in sub_powerful:
            columns.append(_multiply(np.dot(embedding, b), rel_vector, index))
    return _integer_inverse(np.array(columns, dtype=object).T)


class CyclotomicRing:
    """
    Anel ciclotômico Z[x]/(Φ_m(x)) ou Z_q[x]/(Φ_m(x)).

    Attributes:
        index: Índice ciclotômico m
        modulus: Módulo q dos coeficientes (None para o anel inteiro)
        degree: Dimensão φ(m)
    """

    def __init__(self, index: int, modulus: Optional[int] = None):
        if index < 1:
            raise ParameterMismatchError(f"Índice ciclotômico inválido: {index}")
        if modulus is not None and modulus < 2:
            raise ParameterMismatchError(f"Módulo inválido: {modulus}")
        self.index = int(index)
        self.modulus = None if modulus is None else int(modulus)
        self.degree = euler_phi(self.index)

    def __eq__(self, other):
        return (
            isinstance(other, CyclotomicRing)
            and self.index == other.index
            and self.modulus == other.modulus
        )

    def __hash__(self):
        return hash((self.index, self.modulus))

    def __repr__(self):
        if self.modulus is None:
            return f"CyclotomicRing(m={self.index}, Z)"
        return f"CyclotomicRing(m={self.index}, q={self.modulus})"

    @property
    def is_integral(self) -> bool:
        return self.modulus is None

    def with_modulus(self, modulus: Optional[int]) -> "CyclotomicRing":
        return CyclotomicRing(self.index, modulus)

    def with_index(self, index: int) -> "CyclotomicRing":
        return CyclotomicRing(index, self.modulus)

    # === CONSTRUTORES ===
    def element(self, coeffs: Sequence[int]) -> "RingElement":
        return RingElement(self, coeffs)

    def zero(self) -> "RingElement":
        return RingElement(self, [0] * self.degree)

    def one(self) -> "RingElement":
        return self.scalar(1)

    def scalar(self, value: int) -> "RingElement":
        coeffs = [0] * self.degree
        coeffs[0] = int(value)
        return RingElement(self, coeffs)

    def g(self) -> "RingElement":
        """Elemento distinto g_m."""
        return RingElement(self, g_coefficients(self.index))

    def from_powerful(self, coords: Sequence[int]) -> "RingElement":
        return self._from_basis(coords, POWERFUL_BASIS)

    def from_decoding(self, coords: Sequence[int]) -> "RingElement":
        return self._from_basis(coords, DECODING_BASIS)

    def _from_basis(self, coords: Sequence[int], basis: str) -> "RingElement":
        to_power, _ = _basis_matrices(self.index, basis)
        coords = np.array([int(c) for c in coords], dtype=object)
        return RingElement(self, np.dot(to_power, coords))

    def relative_powerful_basis(self, sub_index: int) -> List["RingElement"]:
        """Base powerful relativa de O_m sobre O_e (e = sub_index)."""
        self._check_subring(sub_index)
        return [
            RingElement(self, v)
            for v in relative_basis(self.index, sub_index, POWERFUL_BASIS)
        ]

    def relative_decoding_basis(self, sub_index: int) -> List["RingElement"]:
        """Base de decodificação relativa de O_m sobre O_e (e = sub_index)."""
        self._check_subring(sub_index)
        return [
            RingElement(self, v)
            for v in relative_basis(self.index, sub_index, DECODING_BASIS)
        ]

    def _check_subring(self, sub_index: int):
        if self.index % sub_index != 0:
            raise ParameterMismatchError(
                f"Índice {sub_index} não divide o índice do anel {self.index}"
            )


class RingElement:
    """
    Elemento imutável de um CyclotomicRing, na base de potências.

    Os coeficientes são reduzidos para [0, q) quando o anel tem módulo.
    """

    __array_priority__ = 1000

    def __init__(self, ring: CyclotomicRing, coeffs: Sequence[int]):
        values = np.array([int(c) for c in coeffs], dtype=object)
        if len(values) != ring.degree:
            raise ParameterMismatchError(
                f"Esperados {ring.degree} coeficientes para {ring}, "
                f"recebidos {len(values)}"
            )
        if ring.modulus is not None:
            values = values % ring.modulus
        self.ring = ring
        self._coeffs = values

    @property
    def coeffs(self) -> np.ndarray:
        """Cópia dos coeficientes na base de potências."""
        return self._coeffs.copy()

    @property
    def index(self) -> int:
        return self.ring.index

    @property
    def modulus(self) -> Optional[int]:
        return self.ring.modulus

    def __repr__(self):
        return f"RingElement({self.ring}, {list(self._coeffs)})"

    def _check_same_ring(self, other: "RingElement"):
        if self.ring != other.ring:
            raise ParameterMismatchError(
                f"Elementos de anéis diferentes: {self.ring} e {other.ring}"
            )

    # === ARITMÉTICA ===
    def __add__(self, other):
        if isinstance(other, int):
            other = self.ring.scalar(other)
        if not isinstance(other, RingElement):
            return NotImplemented
        self._check_same_ring(other)
        return RingElement(self.ring, self._coeffs + other._coeffs)

    def __radd__(self, other):
        # permite sum() sobre listas de elementos
        return self.__add__(other)

    def __neg__(self):
        return RingElement(self.ring, -self._coeffs)

    def __sub__(self, other):
        if isinstance(other, int):
            other = self.ring.scalar(other)
        if not isinstance(other, RingElement):
            return NotImplemented
        return self + (-other)

    def __mul__(self, other):
        if isinstance(other, (int, np.integer)):
            return RingElement(self.ring, self._coeffs * int(other))
        if not isinstance(other, RingElement):
            return NotImplemented
        self._check_same_ring(other)
        return RingElement(
            self.ring, _multiply(self._coeffs, other._coeffs, self.index)
        )

    def __rmul__(self, other):
        return self.__mul__(other)

    def __eq__(self, other):
        if not isinstance(other, RingElement):
            return NotImplemented
        return self.ring == other.ring and bool(np.all(self._coeffs == other._coeffs))

    __hash__ = None

    def is_zero(self) -> bool:
        return not any(self._coeffs)

    # === ELEMENTO g ===
    def mul_g(self) -> "RingElement":
        return RingElement(self.ring, np.dot(mul_g_matrix(self.index), self._coeffs))

    def div_g(self) -> Optional["RingElement"]:
        """
        Divisão exata por g_m.

        Returns:
            RingElement ou None se o elemento não for múltiplo de g
            (ou se g não for invertível módulo q)
        """
        if all(p == 2 for p, _ in prime_power_factors(self.index)):
            # g_m = 1 quando m é potência de 2
            return self
        if self.modulus is not None:
            inverse = _div_g_matrix_mod(self.index, self.modulus)
            if inverse is None:
                return None
            return RingElement(self.ring, np.dot(inverse, self._coeffs))

        solution = _div_g_matrix_rational(self.index) * Matrix(self._coeffs.tolist())
        if not all(v.is_integer for v in solution):
            return None
        return RingElement(self.ring, [int(v) for v in solution])

    # === BASES ===
    def to_powerful(self) -> np.ndarray:
        return self._to_basis(POWERFUL_BASIS)

    def to_decoding(self) -> np.ndarray:
        return self._to_basis(DECODING_BASIS)

    def _to_basis(self, basis: str) -> np.ndarray:
        _, from_power = _basis_matrices(self.index, basis)
        coords = np.dot(from_power, self._coeffs)
        if self.modulus is not None:
            coords = coords % self.modulus
        return coords

    def coeffs_relative(self, sub_index: int, basis: str = POWERFUL_BASIS) -> List["RingElement"]:
        """
        Coeficientes (em O_e) do elemento sobre a base relativa de O_m / O_e.

        Satisfaz x == Σ embed(c_j) · rel_j.
        """
        self.ring._check_subring(sub_index)
        inverse = relative_coefficients_matrix(self.index, sub_index, basis)
        coords = np.dot(inverse, self._coeffs)
        sub_ring = self.ring.with_index(sub_index)
        size = sub_ring.degree
        return [
            sub_ring.from_powerful(coords[j * size : (j + 1) * size])
            for j in range(len(coords) // size)
        ]

    # === MÓDULO ===
    def lift(self, basis: str = POWERFUL_BASIS) -> "RingElement":
        """Lift centrado para Z[x]/Φ_m, coordenada a coordenada na base dada."""
        integer_ring = self.ring.with_modulus(None)
        if self.modulus is None:
            return self
        coords = mod_centered(self._to_basis(basis), self.modulus)
        return integer_ring._from_basis(coords, basis)

    def reduce(self, modulus: int) -> "RingElement":
        """Redução para Z_modulus (a partir de Z ou de um múltiplo de modulus)."""
        if self.modulus is not None and self.modulus % modulus != 0:
            raise ParameterMismatchError(
                f"Não é possível reduzir de Z_{self.modulus} para Z_{modulus}"
            )
        return RingElement(self.ring.with_modulus(modulus), self._coeffs)

    def rescale(self, modulus: int, basis: str = POWERFUL_BASIS) -> "RingElement":
        """
        Rescale de Z_q para Z_q': arredonda (q'/q)·x coordenada a coordenada,
        sobre o lift centrado na base indicada.
        """
        if self.modulus is None:
            raise ParameterMismatchError("Rescale requer um anel com módulo")
        coords = mod_centered(self._to_basis(basis), self.modulus)
        scaled = [round_div(int(c) * modulus, self.modulus) for c in coords]
        return self.ring.with_modulus(modulus)._from_basis(scaled, basis)

    # === ÍNDICE ===
    def embed(self, index: int) -> "RingElement":
        """Imersão de R_m em R_index (m | index)."""
        if index % self.index != 0:
            raise ParameterMismatchError(
                f"Embed requer {self.index} | {index}"
            )
        if index == self.index:
            return self
        return RingElement(
            self.ring.with_index(index),
            np.dot(embed_matrix(self.index, index), self._coeffs),
        )

    def twace(self, index: int) -> "RingElement":
        """Traço "tweaked" de R_m para R_index (index | m)."""
        if self.index % index != 0:
            raise ParameterMismatchError(
                f"Twace requer {index} | {self.index}"
            )
        if index == self.index:
            return self
        return RingElement(
            self.ring.with_index(index),
            np.dot(twace_matrix(self.index, index), self._coeffs),
        )

    def automorphism(self, power: int) -> "RingElement":
        """Automorfismo de Galois ζ_m -> ζ_m^power (gcd(power, m) = 1)."""
        if gcd(power, self.index) != 1:
            raise ParameterMismatchError(
                f"Automorfismo requer gcd({power}, {self.index}) = 1"
            )
        return RingElement(self.ring, _automorphism(self._coeffs, power, self.index))

    def max_abs_decoding(self) -> int:
        """Maior coordenada (lift centrado) na base de decodificação."""
        coords = self._to_basis(DECODING_BASIS)
        if self.modulus is not None:
            coords = mod_centered(coords, self.modulus)
        return max((abs(int(c)) for c in coords), default=0)
