"""
DEX quote aggregation and arbitrage scanner.

Fetches exact-input quotes from V2 routers and V3 quoters, compares venue
rates, and simulates round-trip arbitrage across many token pairs.
"""
