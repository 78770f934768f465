# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains the identity and error handling components of the
civic issue tracker API.
"""
