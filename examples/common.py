# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Common configuration for the Sui Sponsor SDK examples.

Environment Variables:
    SUI_SPONSOR_URL: Base URL of the gas station
    SUI_NETWORK_URL: JSON-RPC endpoint of a Sui full node
    SUI_SECRET_KEY: Base64 secret key of the sending account (flag byte and
        32-byte seed). A fresh key is generated when unset.

Usage::

    import os
    os.environ["SUI_SPONSOR_URL"] = "http://localhost:3000"

    from examples.common import SPONSOR_URL
"""

import os

# :!:>section_1
SPONSOR_URL = os.getenv("SUI_SPONSOR_URL", "http://localhost:3000")

NETWORK_URL = os.getenv("SUI_NETWORK_URL", "https://fullnode.devnet.sui.io:443")

SECRET_KEY = os.getenv("SUI_SECRET_KEY")
# <:!:section_1
