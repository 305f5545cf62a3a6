"""Faker based demo data generators."""

from loan_ledger.generators.base import BaseGenerator
from loan_ledger.generators.client import ClientGenerator
from loan_ledger.generators.loan import LoanTerms, LoanTermsGenerator

__all__ = ["BaseGenerator", "ClientGenerator", "LoanTerms", "LoanTermsGenerator"]
