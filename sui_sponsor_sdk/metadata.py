# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client identification for outbound HTTP requests.

Every request made by :mod:`sui_sponsor_sdk.async_client` carries a
``client-sdk-type`` / ``client-sdk-version`` header pair so sponsors and full
nodes can tell SDK traffic apart in their logs.
"""

import importlib.metadata as metadata

PACKAGE_NAME = "sui-sponsor-sdk"


class Metadata:
    SDK_TYPE_HEADER = "client-sdk-type"
    SDK_VERSION_HEADER = "client-sdk-version"
    SDK_TYPE = "python-sponsor"

    @staticmethod
    def get_version() -> str:
        """Installed version of the package, e.g. ``"0.1.0"``.

        Raises:
            PackageNotFoundError: If the package is not installed.
        """
        return metadata.version(PACKAGE_NAME)

    @staticmethod
    def headers() -> dict:
        return {
            Metadata.SDK_TYPE_HEADER: Metadata.SDK_TYPE,
            Metadata.SDK_VERSION_HEADER: Metadata.get_version(),
        }
