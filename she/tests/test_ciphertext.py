"""
Testes para a classe SHECiphertext: codificação, aritmética homomórfica e
operações com valores públicos.
"""

import pytest
from she.ciphertext import Encoding, SHECiphertext, encoding_constants
from she.ciphertext_factory import SHECiphertextFactory
from she.constants import SHECryptographicParameters
from she.cyclotomic import CyclotomicRing
from she.exceptions import ParameterMismatchError, PreconditionViolationError
from she.key_factory import SHEKeyFactory


class TestSHECiphertextStructure:
    """Testes para a estrutura do ciphertext"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters.basic_config(seed=2024)
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()
        self.plaintext_ring = self.crypto_params.plaintext_ring()

    def test_fresh_ciphertext_fields(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.plaintext_ring.one())

        assert ct.encoding == Encoding.LSD
        assert ct.k == 0
        assert ct.scale == 1
        assert ct.size == 2
        assert ct.modulus == 40961
        assert ct.ciphertext_index == 8
        assert ct.plaintext_index == 8
        assert ct.plaintext_modulus == 2

    def test_component_count_validation(self):
        ring = self.crypto_params.ciphertext_ring()
        with pytest.raises(PreconditionViolationError, match="entre 1 e 3"):
            SHECiphertext(Encoding.LSD, 0, 1, [ring.zero()] * 4, 8, 2)

    def test_components_must_share_ring(self):
        with pytest.raises(ParameterMismatchError, match="mesmo anel"):
            SHECiphertext(
                Encoding.LSD,
                0,
                1,
                [CyclotomicRing(8, 40961).zero(), CyclotomicRing(8, 65537).zero()],
                8,
                2,
            )

    def test_plaintext_index_must_divide(self):
        with pytest.raises(ParameterMismatchError, match="deve dividir"):
            SHECiphertext(Encoding.LSD, 0, 1, [CyclotomicRing(8, 40961).zero()], 3, 2)

    def test_get_component_out_of_range(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.plaintext_ring.one())
        assert ct.get_component(1) == ct.components[1]
        with pytest.raises(IndexError, match="fora do alcance"):
            ct.get_component(2)

    def test_components_are_immutable(self):
        components = [self.crypto_params.ciphertext_ring().one()] * 2
        ct = SHECiphertext(Encoding.LSD, 0, 1, components, 8, 2)
        components.append(components[0])

        assert ct.size == 2
        assert isinstance(ct.components, tuple)
        assert ct.mul_g(0).components == ct.components
        with pytest.raises(AttributeError):
            ct.components.append(components[0])

    def test_non_invertible_scale(self):
        """Escala 2 não é invertível módulo 4; o erro não encadeia o ValueError de pow"""
        ring = CyclotomicRing(8, 40961)
        ct = SHECiphertext(Encoding.LSD, 0, 2, [ring.zero(), ring.zero()], 8, 4)

        with pytest.raises(PreconditionViolationError, match="não é invertível") as excinfo:
            ct.add_scalar(1)
        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__

    def test_trivial_ciphertexts(self):
        ring = self.crypto_params.ciphertext_ring()
        zero = SHECiphertext.zero(ring, 8, 2)
        one = SHECiphertext.one(ring, 8, 2)

        assert self.ciphertext_factory.decrypt(self.secret_key, zero) == self.plaintext_ring.zero()
        assert self.ciphertext_factory.decrypt(self.secret_key, one) == self.plaintext_ring.one()


class TestEncoding:
    """Testes para a conversão MSD <-> LSD"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters(plaintext_modulus=3, seed=7)
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()
        self.message = self.crypto_params.plaintext_ring().element([1, 2, 0, 2])

    def test_encoding_constants_are_inverse(self):
        (p_to_msd, q_to_msd), (p_to_lsd, q_to_lsd) = encoding_constants(3, 40961)
        assert (p_to_msd * p_to_lsd) % 3 == 1
        assert (q_to_msd * q_to_lsd) % 40961 == 1

    def test_encoding_constants_require_coprime(self):
        with pytest.raises(ParameterMismatchError, match="coprimos"):
            encoding_constants(3, 9)

    def test_round_trip_from_lsd(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message)
        assert ct.to_msd().to_lsd() == ct

    def test_round_trip_from_msd(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message).to_msd()
        assert ct.encoding == Encoding.MSD
        assert ct.to_lsd().to_msd() == ct

    def test_conversion_is_noop_when_already_encoded(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message)
        assert ct.to_lsd() is ct
        msd = ct.to_msd()
        assert msd.to_msd() is msd

    def test_msd_decrypts_to_same_message(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message).to_msd()
        assert self.ciphertext_factory.decrypt(self.secret_key, ct) == self.message


class TestHomomorphicArithmetic:
    """Testes para adição, negação e multiplicação homomórficas"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters(
            plaintext_index=9, plaintext_modulus=2, seed=42
        )
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()

        ring = self.crypto_params.plaintext_ring()
        self.pt1 = ring.element([1, 0, 1, 1, 0, 0])
        self.pt2 = ring.element([0, 1, 1, 0, 0, 1])
        self.ct1 = self.ciphertext_factory.encrypt(self.secret_key, self.pt1)
        self.ct2 = self.ciphertext_factory.encrypt(self.secret_key, self.pt2)

    def decrypt(self, ct):
        return self.ciphertext_factory.decrypt(self.secret_key, ct)

    def test_addition(self):
        assert self.decrypt(self.ct1 + self.ct2) == self.pt1 + self.pt2

    def test_subtraction_and_negation(self):
        assert self.decrypt(-self.ct1) == -self.pt1
        assert self.decrypt(self.ct1 - self.ct2) == self.pt1 - self.pt2

    def test_addition_mixed_encodings(self):
        result = self.ct1.to_msd() + self.ct2
        assert result.encoding == Encoding.MSD
        assert self.decrypt(result) == self.pt1 + self.pt2

    def test_g_exponent_alignment(self):
        """Somar em k=0 com uma cópia em k=2 equivale a somar antes de avançar k"""
        advanced = self.ct2.mul_g().mul_g()
        assert advanced.k == 2

        result = self.ct1 + advanced
        assert result.k == 2
        assert self.decrypt(result) == self.decrypt((self.ct1 + self.ct2).mul_g(2))
        assert self.decrypt(result) == self.pt1 + self.pt2

    def test_addition_with_different_scales(self):
        crypto_params = SHECryptographicParameters(plaintext_modulus=3, seed=1)
        factory = SHECiphertextFactory(crypto_params)
        secret_key = SHEKeyFactory(crypto_params).generate_secret_key()
        ct = factory.encrypt(secret_key, crypto_params.plaintext_ring().one())
        rescaled = SHECiphertext(
            ct.encoding, ct.k, 2, ct.components, ct.plaintext_index, ct.plaintext_modulus
        )

        with pytest.raises(PreconditionViolationError, match="escalas diferentes"):
            ct + rescaled

    def test_addition_with_different_rings(self):
        other = SHECiphertext.zero(CyclotomicRing(9, 65537), 9, 2)
        with pytest.raises(ParameterMismatchError, match="anéis diferentes"):
            self.ct1 + other

    def test_multiplication_result_shape(self):
        product = self.ct1 * self.ct2
        assert product.size == 3
        assert product.k == 1
        assert product.scale == 1
        assert product.encoding == Encoding.LSD

    def test_multiplication_without_relinearization(self):
        product = self.ct1 * self.ct2
        assert self.decrypt(product) == self.pt1 * self.pt2

    def test_multiplication_both_msd(self):
        """Com ambos em MSD, o primeiro operando é convertido para LSD"""
        product = self.ct1.to_msd() * self.ct2.to_msd()
        assert product.encoding == Encoding.MSD
        assert self.decrypt(product) == self.pt1 * self.pt2

    def test_multiplication_too_many_components(self):
        product = self.ct1 * self.ct2
        with pytest.raises(PreconditionViolationError, match="componentes"):
            product * self.ct1


class TestPublicOperations:
    """Testes para operações com valores públicos"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters(
            plaintext_index=3, ciphertext_index=9, plaintext_modulus=2, seed=99
        )
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()

        self.ring = self.crypto_params.plaintext_ring()
        self.pt = self.ring.element([1, 0])
        self.ct = self.ciphertext_factory.encrypt(self.secret_key, self.pt)

    def decrypt(self, ct):
        return self.ciphertext_factory.decrypt(self.secret_key, ct)

    def test_add_scalar(self):
        assert self.decrypt(self.ct.add_scalar(1)) == self.pt + 1

    def test_add_scalar_after_mul_g(self):
        """O escalar é ajustado para a potência de g do ciphertext"""
        advanced = self.ct.mul_g()
        assert self.decrypt(advanced.add_scalar(1)) == self.pt + 1

    def test_add_public(self):
        value = self.ring.element([1, 1])
        assert self.decrypt(self.ct.add_public(value)) == self.pt + value

    def test_add_public_to_msd(self):
        value = self.ring.element([0, 1])
        result = self.ct.to_msd().add_public(value)
        assert result.encoding == Encoding.LSD
        assert self.decrypt(result) == self.pt + value

    def test_mul_public(self):
        value = self.ring.element([1, 1])
        assert self.decrypt(self.ct.mul_public(value)) == self.pt * value
        assert self.decrypt(self.ct.to_msd().mul_public(value)) == self.pt * value

    def test_public_value_from_wrong_ring(self):
        with pytest.raises(ParameterMismatchError, match="não pertence"):
            self.ct.add_public(CyclotomicRing(9, 2).one())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
