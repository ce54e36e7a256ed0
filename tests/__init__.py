# SPDX-License-Identifier: Apache-2.0
"""
Remote Store SDK Tests

Covers the gateway, naming rules, error translation, both transports, the
mock adapter and the CLI.
"""
