"""
Self-attention block feeding a downstream MLP.

The flat input of length n * din is read as an n x din token matrix X.
Queries and keys are projections of X^T, so attention relates the din
feature columns to each other:

    Q = X^T Wq + bq            (din x dk)
    K = X^T Wk + bk            (din x dk)
    A = tanh(Q K^T / sqrt(dk)) (din x din)
    Z = A X^T                  (din x n)

Z is flattened row by row and passed to the downstream FeedforwardNetwork.
"""

import numpy as np

from .errors import DimensionMismatch, InvalidConfiguration, check_length
from .functions import RealFunction, as_vector
from .networks import FeedforwardNetwork
from .snapshots import Domain, NetworkState, Snapshot


def count_attention_params(n: int, dk: int) -> int:
    """Wq and Wk (n x dk each) plus their biases."""
    return 2 * (n * dk + dk)


class SelfAttentionNetwork(RealFunction):
    """
    Attention front-end + MLP back-end.

    The parameter vector is [attention params, downstream params]; the two
    parts can also be read and written separately.

    Args:
        downstream: Network receiving the flattened latent code (input dim n * din)
        n: Number of tokens
        din: Token width
        dk: Query/key width
        params: Optional flat attention parameters [Wq, bq, Wk, bk]
    """

    def __init__(self, downstream: FeedforwardNetwork, n: int, din: int, dk: int, params=None):
        if n <= 0 or din <= 0 or dk <= 0:
            raise InvalidConfiguration(f"n, din and dk must be positive: n={n}, din={din}, dk={dk}")
        if downstream.input_dim != n * din:
            raise DimensionMismatch("downstream inputs", n * din, downstream.input_dim)
        self.downstream = downstream
        self.n = n
        self.din = din
        self.dk = dk
        self.wq = np.zeros((n, dk))
        self.bq = np.zeros(dk)
        self.wk = np.zeros((n, dk))
        self.bk = np.zeros(dk)
        if params is not None:
            self.set_attention_params(params)
        self.attention = np.zeros((din, din))
        self.latent_code = np.zeros((din, n))

    @property
    def input_dim(self) -> int:
        return self.n * self.din

    @property
    def output_dim(self) -> int:
        return self.downstream.output_dim

    @property
    def output_domain(self) -> Domain:
        return self.downstream.output_domain

    def apply_attention(self, inputs) -> np.ndarray:
        """Latent code (din x n) for an input vector."""
        x = as_vector(inputs, self.input_dim)
        tokens_t = x.reshape(self.n, self.din).T
        q = tokens_t @ self.wq + self.bq
        k = tokens_t @ self.wk + self.bk
        self.attention = np.tanh(q @ k.T / np.sqrt(self.dk))
        self.latent_code = self.attention @ tokens_t
        return self.latent_code.copy()

    def forward(self, inputs) -> np.ndarray:
        return self.downstream.forward(self.apply_attention(inputs).ravel())

    def count_attention_params(self) -> int:
        return count_attention_params(self.n, self.dk)

    def get_attention_params(self) -> np.ndarray:
        return np.concatenate([self.wq.ravel(), self.bq, self.wk.ravel(), self.bk])

    def set_attention_params(self, params) -> None:
        params = np.asarray(params, dtype=np.float64)
        check_length("attention parameters", params, self.count_attention_params())
        c = 0
        for block in (self.wq, self.bq, self.wk, self.bk):
            block[...] = params[c:c + block.size].reshape(block.shape)
            c += block.size

    def get_downstream_params(self) -> np.ndarray:
        return self.downstream.get_params()

    def set_downstream_params(self, params) -> None:
        self.downstream.set_params(params)

    def get_params(self) -> np.ndarray:
        return np.concatenate([self.get_attention_params(), self.get_downstream_params()])

    def set_params(self, params) -> None:
        params = np.asarray(params, dtype=np.float64)
        n_attention = self.count_attention_params()
        check_length("parameters", params, n_attention + self.downstream.num_params())
        self.set_attention_params(params[:n_attention])
        self.set_downstream_params(params[n_attention:])

    def reset(self) -> None:
        self.downstream.reset()
        self.attention = np.zeros((self.din, self.din))
        self.latent_code = np.zeros((self.din, self.n))

    def snapshot(self) -> Snapshot:
        state = NetworkState(
            [self.latent_code.ravel()],
            [self.attention],
            Domain(-1.0, 1.0),
        )
        return Snapshot(state, type(self), [self.downstream.snapshot()])

    def __repr__(self) -> str:
        return f"SelfAttention[n={self.n},din={self.din},dk={self.dk}]->{self.downstream!r}"
