"""
Fábrica para geração de chaves secretas e dicas de key switching do esquema SHE.

Esta classe implementa a geração de chaves e das transformações públicas
(key switching linear, relinearização e tunneling de anel) a partir delas.
"""

import logging
from typing import Dict, List, Optional

from .constants import SHECryptographicParameters
from .cyclotomic import CyclotomicRing, RingElement
from .exceptions import ParameterMismatchError
from .gadget import BaseBGadget
from .key_switching import Hint, KeySwitchLinear, KeySwitchQuadCirc, RingTunnel
from .linear import LinearMap

logger = logging.getLogger(__name__)


class SHESecretKey:
    """
    Chave secreta: um elemento s de Z[x]/Φ_m' e a variância escalada usada
    para amostrá-lo. Imutável após a criação.
    """

    def __init__(self, value: RingElement, variance: float):
        if not value.ring.is_integral:
            raise ParameterMismatchError("A chave secreta deve estar sobre Z[x]/Φ_m'")
        self._value = value
        self._variance = variance

    @property
    def value(self) -> RingElement:
        return self._value

    @property
    def variance(self) -> float:
        return self._variance

    @property
    def index(self) -> int:
        return self._value.index

    def reduce(self, modulus: int) -> RingElement:
        """s reduzido módulo q."""
        return self._value.reduce(modulus)

    def __repr__(self):
        return f"SHESecretKey(m'={self.index}, v={self.variance})"


class SHEKeyFactory:
    """
    Fábrica para geração de chaves SHE e dicas de key switching.

    KeyGen(v): s ← round(N(0, v)) na base de decodificação de R'.

    Uma dica para o valor x sob s_out, com gadget (g_1, ..., g_n) sobre q':
        hint_i = (c1_i · (-s_out) + e_i + x · g_i,  c1_i),  c1_i ← R'_q' uniforme
    """

    def __init__(self, crypto_params: SHECryptographicParameters = None):
        """
        Inicializa a fábrica de chaves com parâmetros criptográficos.

        Args:
            crypto_params: Parâmetros criptográficos SHE (usa padrão se None)
        """
        if crypto_params is None:
            crypto_params = SHECryptographicParameters()

        self.crypto_params = crypto_params

    def default_gadget(self) -> BaseBGadget:
        """Gadget base-B sobre o módulo das dicas q'."""
        return BaseBGadget(self.crypto_params.GADGET_BASE, self.crypto_params.HINT_MODULUS)

    def generate_secret_key(
        self, variance: Optional[float] = None, index: Optional[int] = None
    ) -> SHESecretKey:
        """
        Gera uma chave secreta com a variância escalada dada.

        Args:
            variance: Variância escalada v (usa VARIANCE se None)
            index: Índice do anel da chave (usa m' se None)

        Returns:
            SHESecretKey: Chave secreta
        """
        if variance is None:
            variance = self.crypto_params.VARIANCE
        ring = self.crypto_params.integer_ring(index)
        value = self.crypto_params.generate_rounded_error(ring, variance)
        logger.debug("Chave secreta gerada em R_%d com v=%s", ring.index, variance)
        return SHESecretKey(value, variance)

    @staticmethod
    def embed_secret_key(secret_key: SHESecretKey, index: int) -> SHESecretKey:
        """Imerge a chave secreta de um subanel em um anel maior."""
        return SHESecretKey(secret_key.value.embed(index), secret_key.variance)

    def lwe_sample(self, secret_key: SHESecretKey, modulus: int) -> List[RingElement]:
        """
        Amostra LWE (c1 · (-s) + e, c1): cifração linear de 0 em MSD.

        Args:
            secret_key: Chave sob a qual a amostra é gerada
            modulus: Módulo da amostra

        Returns:
            List[RingElement]: Polinômio linear [c0, c1]
        """
        ring = CyclotomicRing(secret_key.index, modulus)
        error = self.crypto_params.generate_rounded_error(ring, secret_key.variance)
        c1 = self.crypto_params.generate_uniform(ring)
        c0 = c1 * (-secret_key.reduce(modulus)) + error
        return [c0, c1]

    def generate_ks_hint(
        self, secret_out: SHESecretKey, value: RingElement, gadget=None
    ) -> Hint:
        """
        Gera uma dica que "cifra" value sob secret_out para key switching.

        A dica funciona para qualquer módulo de plaintext, mas deve ser
        aplicada a um ciphertext em MSD.

        Args:
            secret_out: Chave de saída
            value: Valor sobre Z[x]/Φ_m' (mesmo índice de secret_out)
            gadget: Gadget da decomposição (usa default_gadget se None)

        Returns:
            Hint: Uma amostra [c0_i, c1_i] por entrada do gadget

        Raises:
            ParameterMismatchError: Se os índices não coincidem
        """
        if gadget is None:
            gadget = self.default_gadget()
        if value.index != secret_out.index:
            raise ParameterMismatchError(
                f"Valor em R_{value.index} e chave em R_{secret_out.index}"
            )

        value_q = value.reduce(gadget.modulus)
        hint = []
        for entry in gadget.vector():
            c0, c1 = self.lwe_sample(secret_out, gadget.modulus)
            hint.append([c0 + value_q * entry, c1])
        logger.debug(
            "Dica gerada com %d amostras em R_%d (q'=%d)",
            len(hint),
            secret_out.index,
            gadget.modulus,
        )
        return hint

    def key_switch_linear(
        self, secret_out: SHESecretKey, secret_in: SHESecretKey, gadget=None
    ) -> KeySwitchLinear:
        """
        Gera a transformação que troca um ciphertext linear sob secret_in por
        um sob secret_out.

        Raises:
            ParameterMismatchError: Se as chaves estão em anéis diferentes
        """
        if secret_out.index != secret_in.index:
            raise ParameterMismatchError(
                f"Chaves em anéis diferentes: R_{secret_out.index} e R_{secret_in.index}"
            )
        if gadget is None:
            gadget = self.default_gadget()
        hint = self.generate_ks_hint(secret_out, secret_in.value, gadget)
        return KeySwitchLinear(hint, gadget)

    def key_switch_quad_circ(self, secret_key: SHESecretKey, gadget=None) -> KeySwitchQuadCirc:
        """Gera a relinearização de ciphertexts de 3 componentes sob a mesma chave."""
        if gadget is None:
            gadget = self.default_gadget()
        s = secret_key.value
        hint = self.generate_ks_hint(secret_key, s * s, gadget)
        return KeySwitchQuadCirc(hint, gadget)

    def tunnel(
        self,
        linear_map: LinearMap,
        secret_out: SHESecretKey,
        secret_in: SHESecretKey,
        gadget=None,
    ) -> RingTunnel:
        """
        Gera o tunneling que aplica homomorficamente a função E-linear
        linear_map: R -> S, levando ciphertexts sob secret_in (em R') para
        ciphertexts sob secret_out (em S').

        Uma dica é gerada para cada elemento b_j da base powerful relativa de
        R'/E', cifrando f'(s_in · b_j).

        Args:
            linear_map: Função sobre o anel de plaintext (módulo p)
            secret_out: Chave em S'
            secret_in: Chave em R'
            gadget: Gadget da decomposição (usa default_gadget se None)

        Returns:
            RingTunnel: Transformação de ciphertexts
        """
        if gadget is None:
            gadget = self.default_gadget()
        extended = linear_map.lift().extend(secret_in.index, secret_out.index)
        basis = CyclotomicRing(secret_in.index).relative_powerful_basis(extended.e)

        hints = [
            self.generate_ks_hint(secret_out, extended.evaluate(secret_in.value * b), gadget)
            for b in basis
        ]
        logger.debug(
            "Tunneling R_%d -> R_%d preparado com %d dicas",
            secret_in.index,
            secret_out.index,
            len(hints),
        )
        return RingTunnel(
            extended.reduce(self.crypto_params.CIPHERTEXT_MODULUS),
            hints,
            gadget,
            plaintext_index=linear_map.r,
            target_plaintext_index=linear_map.s,
        )

    def generate_full_keyset(self, variance: Optional[float] = None) -> Dict[str, object]:
        """
        Gera uma chave secreta e a relinearização correspondente.

        Returns:
            Dict: {'secret_key': SHESecretKey, 'relinearization': KeySwitchQuadCirc}
        """
        secret_key = self.generate_secret_key(variance)
        return {
            "secret_key": secret_key,
            "relinearization": self.key_switch_quad_circ(secret_key),
        }


# Função de conveniência para criar instância da fábrica de chaves
def create_key_factory(
    crypto_params: SHECryptographicParameters = None,
) -> SHEKeyFactory:
    """
    Cria uma nova instância da fábrica de chaves SHE.

    Args:
        crypto_params: Parâmetros criptográficos (usa padrão se None)

    Returns:
        SHEKeyFactory: Nova instância da fábrica de chaves
    """
    return SHEKeyFactory(crypto_params)
