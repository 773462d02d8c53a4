"""
Treasury valuation engine.

Computes, for each indexed block, a protocol treasury's market value,
liquid backing and circulating / floating / backed supply by pricing
treasury holdings through on-chain liquidity pools.
"""

__version__ = "0.1.0"
