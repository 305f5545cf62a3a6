"""Client generator with Brazilian personal data."""

from __future__ import annotations

import random
from typing import Iterator

from loan_ledger.generators.base import BaseGenerator
from loan_ledger.models import Address, Client


class ClientGenerator(BaseGenerator):
    """Generate synthetic clients.

    CPFs come out formatted (``XXX.XXX.XXX-XX``) with valid check digits;
    ``ClientService`` strips them to digits on creation.
    """

    COMPLEMENTS = ["", "", "", "Apto 12", "Apto 304", "Casa 2", "Bloco B", "Fundos"]

    # Share of clients registered without optional fields
    MISSING_FATHER_RATE = 0.15
    MISSING_EMAIL_RATE = 0.10

    def generate(self, owner_id: str | None = None) -> Client:
        """Generate a single client.

        Parameters
        ----------
        owner_id : str | None
            Account that manages the client.

        Returns
        -------
        Client
            Client without ``client_id``; the store assigns one.
        """
        return self._generate_one(owner_id)

    def generate_batch(self, count: int, owner_id: str | None = None) -> Iterator[Client]:
        """Generate multiple clients.

        Yields
        ------
        Client
            Generated clients.
        """
        for _ in range(count):
            yield self._generate_one(owner_id)

    def _generate_one(self, owner_id: str | None) -> Client:
        father = "" if random.random() < self.MISSING_FATHER_RATE else self.fake.name_male()
        email = "" if random.random() < self.MISSING_EMAIL_RATE else self.fake.free_email()

        return Client(
            client_id=None,
            owner_id=owner_id,
            name=self.fake.name(),
            cpf=self.fake.cpf(),
            rg=self.fake.rg(),
            birth_date=self.fake.date_of_birth(minimum_age=18, maximum_age=80),
            mother_name=self.fake.name_female(),
            father_name=father,
            phone=self.fake.cellphone_number(),
            email=email,
            address=self._generate_address(),
        )

    def _generate_address(self) -> Address:
        return Address(
            street=self.fake.street_name(),
            number=self.fake.building_number(),
            complement=random.choice(self.COMPLEMENTS),
            neighborhood=self.fake.bairro(),
            city=self.fake.city(),
            state=self.fake.estado_sigla(),
            postal_code=self.fake.postcode(),
        )
