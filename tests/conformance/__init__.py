"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the presale ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Sale totals equal per-buyer sums and never exceed supply
2. atomicity.py - Every call commits all of its changes or none
3. determinism.py - Identical call sequences give identical state; replay rebuilds it
4. temporal.py - The half-open sale window and the one-shot withdrawal
5. authorization.py - Admin operations fail for every other sender

These tests use hypothesis for property-based testing.
"""
