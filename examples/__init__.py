"""
Sui Sponsor SDK Examples.

- common.py: Endpoints and key taken from the environment
- sponsored_transfer.py: One sponsored send, each protocol step spelled out
- load_test.py: Batches of concurrent sponsored sends

Run any example as a module::

    python -m examples.sponsored_transfer
"""
