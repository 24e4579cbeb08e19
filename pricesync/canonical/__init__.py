"""Canonical forms: field normalization, price rules, product hashing."""
