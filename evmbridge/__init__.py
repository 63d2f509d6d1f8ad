"""ABI encoding, contract calls, gas pricing, transactions and transactors for EVM bridge relayers."""

__version__ = "0.1.0"