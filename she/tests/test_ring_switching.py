"""
Testes para a troca de anel: absorção de g, embed, twace e tunneling.
"""

import pytest
from she.ciphertext_factory import SHECiphertextFactory
from she.constants import SHECryptographicParameters
from she.cyclotomic import CyclotomicRing
from she.exceptions import ParameterMismatchError, PreconditionViolationError
from she.key_factory import SHEKeyFactory
from she.linear import LinearMap


class TestAbsorbGFactors:
    """Testes para a absorção dos fatores de g pendentes"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters(
            plaintext_index=9, plaintext_modulus=2, seed=9
        )
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()
        self.message = self.crypto_params.plaintext_ring().element([1, 0, 1, 0, 0, 1])

    def test_absorb_resets_k(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message).mul_g(2)
        absorbed = ct.absorb_g_factors()

        assert absorbed.k == 0
        assert self.ciphertext_factory.decrypt(self.secret_key, absorbed) == self.message

    def test_absorb_after_multiplication(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message)
        product = (ct * ct).absorb_g_factors()

        assert product.k == 0
        assert self.ciphertext_factory.decrypt(self.secret_key, product) == self.message * self.message

    def test_absorb_is_noop_for_k_zero(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message)
        assert ct.absorb_g_factors() is ct

    def test_absorb_negative_k(self):
        ct = self.ciphertext_factory.encrypt(self.secret_key, self.message)
        with pytest.raises(PreconditionViolationError, match="k < 0"):
            ct._replace(k=-1).absorb_g_factors()

    def test_absorb_when_g_not_invertible(self):
        crypto_params = SHECryptographicParameters(plaintext_index=3, plaintext_modulus=3, seed=3)
        factory = SHECiphertextFactory(crypto_params)
        secret_key = SHEKeyFactory(crypto_params).generate_secret_key()
        ct = factory.encrypt(secret_key, crypto_params.plaintext_ring().one()).mul_g()

        with pytest.raises(PreconditionViolationError, match="não é invertível"):
            ct.absorb_g_factors()


class TestEmbedTwace:
    """Testes para embed e twace de ciphertexts"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters.ring_switch_config(seed=48)
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_key = self.key_factory.generate_secret_key()

    def test_embed(self):
        """Ciphertext em (r=4, r'=8) imerso em (s=8, s'=16)"""
        message = self.crypto_params.plaintext_ring().element([1, 1])
        ct = self.ciphertext_factory.encrypt(self.secret_key, message)
        assert (ct.plaintext_index, ct.ciphertext_index) == (4, 8)

        embedded = ct.embed(8, 16)
        assert (embedded.plaintext_index, embedded.ciphertext_index) == (8, 16)

        embedded_key = self.key_factory.embed_secret_key(self.secret_key, 16)
        assert self.ciphertext_factory.decrypt(embedded_key, embedded) == message.embed(8)

    def test_twace(self):
        """Chave de R_8 imersa em R_16; o twace leva o ciphertext de volta a R_8"""
        embedded_key = self.key_factory.embed_secret_key(self.secret_key, 16)
        message = CyclotomicRing(8, 2).element([1, 0, 1, 1])
        ct = self.ciphertext_factory.encrypt(embedded_key, message)
        assert (ct.plaintext_index, ct.ciphertext_index) == (8, 16)

        traced = ct.twace(8)
        assert (traced.plaintext_index, traced.ciphertext_index) == (8, 8)
        assert self.ciphertext_factory.decrypt(self.secret_key, traced) == message

    def test_twace_reduces_plaintext_index(self):
        """s = gcd(s', r)"""
        embedded_key = self.key_factory.embed_secret_key(self.secret_key, 16)
        message = CyclotomicRing(8, 2).element([1, 0, 0, 1])
        ct = self.ciphertext_factory.encrypt(embedded_key, message)
        assert ct.twace(4).plaintext_index == 4

    def test_embed_requires_k_zero(self):
        ct = self.ciphertext_factory.encrypt(
            self.secret_key, self.crypto_params.plaintext_ring().one()
        ).mul_g()
        with pytest.raises(PreconditionViolationError, match="k == 0"):
            ct.embed(8, 16)

    def test_twace_requires_k_zero(self):
        ct = self.ciphertext_factory.encrypt(
            self.secret_key, self.crypto_params.plaintext_ring().one()
        ).mul_g()
        with pytest.raises(PreconditionViolationError, match="k == 0"):
            ct.twace(4)

    def test_embed_invalid_indices(self):
        ct = self.ciphertext_factory.encrypt(
            self.secret_key, self.crypto_params.plaintext_ring().one()
        )
        with pytest.raises(ParameterMismatchError, match="Embed inválido"):
            ct.embed(16, 8)

    def test_twace_invalid_index(self):
        ct = self.ciphertext_factory.encrypt(
            self.secret_key, self.crypto_params.plaintext_ring().one()
        )
        with pytest.raises(ParameterMismatchError, match="Twace requer"):
            ct.twace(3)


class TestTunnel:
    """Testes para o tunneling de anel"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters.basic_config(seed=777)
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_in = self.key_factory.generate_secret_key()
        self.secret_out = self.key_factory.generate_secret_key()
        self.ring = self.crypto_params.plaintext_ring()

    def test_identity_tunnel_switches_key(self):
        linear_map = LinearMap.identity(1, 8, 2)
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)
        assert len(tunnel.appliers) == 4

        message = self.ring.element([1, 0, 1, 1])
        ct = self.ciphertext_factory.encrypt(self.secret_in, message)
        result = tunnel(ct)

        assert result.k == 0
        assert result.plaintext_index == 8
        assert self.ciphertext_factory.decrypt(self.secret_out, result) == message

    def test_r_linear_tunnel(self):
        """Função R-linear x -> y · x"""
        y = self.ring.element([0, 1, 0, 0])
        linear_map = LinearMap(8, 8, 8, [y])
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)
        assert len(tunnel.appliers) == 1

        message = self.ring.element([1, 1, 0, 1])
        ct = self.ciphertext_factory.encrypt(self.secret_in, message)
        assert self.ciphertext_factory.decrypt(self.secret_out, tunnel(ct)) == y * message

    def test_tunnel_absorbs_g_factors(self):
        linear_map = LinearMap.identity(1, 8, 2)
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)

        message = self.ring.element([0, 1, 1, 0])
        ct = self.ciphertext_factory.encrypt(self.secret_in, message).mul_g()
        assert self.ciphertext_factory.decrypt(self.secret_out, tunnel(ct)) == message

    def test_tunnel_wrong_ring(self):
        linear_map = LinearMap.identity(1, 8, 2)
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)

        params = SHECryptographicParameters(plaintext_index=4, ciphertext_index=16, seed=1)
        secret_key = SHEKeyFactory(params).generate_secret_key()
        ct = SHECiphertextFactory(params).encrypt(secret_key, params.plaintext_ring().one())

        with pytest.raises(ParameterMismatchError, match="não corresponde"):
            tunnel(ct)

    def test_tunnel_wrong_modulus(self):
        linear_map = LinearMap.identity(1, 8, 2)
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)
        ct = self.ciphertext_factory.encrypt(self.secret_in, self.ring.one(), modulus=65537)

        with pytest.raises(ParameterMismatchError, match="função linear"):
            tunnel(ct)

    def test_tunnel_requires_linear_ciphertext(self):
        linear_map = LinearMap.identity(1, 8, 2)
        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)
        ct = self.ciphertext_factory.encrypt(self.secret_in, self.ring.one())

        with pytest.raises(PreconditionViolationError, match="exatamente 2 componentes"):
            tunnel(ct * ct)


class TestTunnelAcrossRings:
    """Tunneling com g != 1, subanéis E não triviais e anéis de saída maiores"""

    def setup_method(self):
        """Configuração executada antes de cada teste"""
        self.crypto_params = SHECryptographicParameters(
            plaintext_index=9, plaintext_modulus=2, seed=919
        )
        self.key_factory = SHEKeyFactory(self.crypto_params)
        self.ciphertext_factory = SHECiphertextFactory(self.crypto_params)
        self.secret_in = self.key_factory.generate_secret_key()
        self.secret_out = self.key_factory.generate_secret_key()
        self.ring = self.crypto_params.plaintext_ring()
        self.message = self.ring.element([1, 0, 1, 1, 0, 1])

    def test_identity_over_integers(self):
        tunnel = self.key_factory.tunnel(LinearMap.identity(1, 9, 2), self.secret_out, self.secret_in)
        assert len(tunnel.appliers) == 6

        ct = self.ciphertext_factory.encrypt(self.secret_in, self.message)
        assert self.ciphertext_factory.decrypt(self.secret_out, tunnel(ct)) == self.message

    def test_identity_over_subring(self):
        """E = O_3: uma dica por elemento da base relativa de O_9/O_3"""
        tunnel = self.key_factory.tunnel(LinearMap.identity(3, 9, 2), self.secret_out, self.secret_in)
        assert len(tunnel.appliers) == 3

        ct = self.ciphertext_factory.encrypt(self.secret_in, self.message).mul_g()
        assert self.ciphertext_factory.decrypt(self.secret_out, tunnel(ct)) == self.message

    def test_galois_automorphism(self):
        """ζ_9 -> ζ_9^4 fixa O_3, logo é O_3-linear"""
        images = [b.automorphism(4) for b in self.ring.relative_decoding_basis(3)]
        linear_map = LinearMap(3, 9, 9, images)
        assert linear_map.evaluate(self.message) == self.message.automorphism(4)

        tunnel = self.key_factory.tunnel(linear_map, self.secret_out, self.secret_in)
        ct = self.ciphertext_factory.encrypt(self.secret_in, self.message)
        result = tunnel(ct)

        assert result.k == 0
        assert self.ciphertext_factory.decrypt(self.secret_out, result) == self.message.automorphism(4)

    def test_tunnel_into_larger_ring(self):
        """O_4 -> O_12 com chaves em anéis diferentes"""
        crypto_params = SHECryptographicParameters(plaintext_index=4, plaintext_modulus=2, seed=412)
        key_factory = SHEKeyFactory(crypto_params)
        factory = SHECiphertextFactory(crypto_params)
        secret_in = key_factory.generate_secret_key()
        secret_out = key_factory.generate_secret_key(index=12)

        linear_map = LinearMap(4, 4, 12, [CyclotomicRing(12, 2).one()])
        tunnel = key_factory.tunnel(linear_map, secret_out, secret_in)

        message = crypto_params.plaintext_ring().element([1, 1])
        result = tunnel(factory.encrypt(secret_in, message))

        assert (result.plaintext_index, result.ciphertext_index) == (12, 12)
        assert factory.decrypt(secret_out, result) == message.embed(12)

    def test_tunnel_with_larger_ciphertext_ring(self):
        """Plaintext em O_4 e ciphertext em O_12: a função é estendida para O_3-linear"""
        crypto_params = SHECryptographicParameters(
            plaintext_index=4, ciphertext_index=12, plaintext_modulus=2, seed=1204
        )
        key_factory = SHEKeyFactory(crypto_params)
        factory = SHECiphertextFactory(crypto_params)
        secret_in = key_factory.generate_secret_key()
        secret_out = key_factory.generate_secret_key()

        tunnel = key_factory.tunnel(LinearMap.identity(1, 4, 2), secret_out, secret_in)
        assert tunnel.linear_map.e == 3
        assert len(tunnel.appliers) == 2

        message = crypto_params.plaintext_ring().element([0, 1])
        result = tunnel(factory.encrypt(secret_in, message))

        assert (result.plaintext_index, result.ciphertext_index) == (4, 12)
        assert factory.decrypt(secret_out, result) == message


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
