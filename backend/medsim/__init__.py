"""Medication administration training simulator backend."""
