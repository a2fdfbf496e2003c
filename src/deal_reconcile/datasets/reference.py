from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

from deal_reconcile.datasets.profiles import BIGIN_LAYOUT
from deal_reconcile.schema import PipelineLayout

_FIRST_NAMES = [
    "María",
    "Juan",
    "Andrés",
    "Lucía",
    "Camilo",
    "Valentina",
    "Sebastián",
    "Daniela",
    "Jorge",
    "Paola",
]
_LAST_NAMES = [
    "Pérez",
    "López",
    "Gómez",
    "Rodríguez",
    "Martínez",
    "Ramírez",
    "Castaño",
    "Muñoz",
]
_STREETS = ["Calle", "Carrera", "Avenida", "Diagonal", "Transversal"]
_CITIES = [
    ("Medellín", "Antioquia"),
    ("Bogotá", "Cundinamarca"),
    ("Cali", "Valle del Cauca"),
    ("Barranquilla", "Atlántico"),
    ("Bucaramanga", "Santander"),
    ("Pereira", "Risaralda"),
]
_SALES_STAGES = ["NUEVO", "CONFIRMADO", "PAGADO"]
_LOGISTICS_STAGES = ["EN PREPARACION", "DESPACHADO", "DEVOLUCIÓN"]
_SHIPPING_STAGES = ["EN TRANSITO", "ENTREGADO", "DEVOLUCION"]


class ReferenceDealGenerator:
    """Generate synthetic raw deals across the three pipelines for tests and benchmarks.

    Each customer places one or more orders. An order is a sales record and,
    usually, a logistics and a shipping record created minutes later. The
    same customer writes their phone and name differently across records.
    """

    def __init__(self, seed: int = 7, layout: PipelineLayout = BIGIN_LAYOUT) -> None:
        self._rng = random.Random(seed)
        self._layout = layout
        self._counter = 0

    def generate(
        self,
        customers: int,
        max_orders: int = 3,
        drop_logistics_rate: float = 0.1,
        drop_shipping_rate: float = 0.2,
        chat_only_rate: float = 0.05,
        foreign_rate: float = 0.05,
        start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc),
    ) -> list[dict[str, Any]]:
        if customers <= 0:
            return []

        records: list[dict[str, Any]] = []
        for idx in range(customers):
            profile = self._profile(idx, chat_only=self._rng.random() < chat_only_rate)
            when = start + timedelta(days=self._rng.randint(0, 300), minutes=self._rng.randint(0, 600))
            for _ in range(self._rng.randint(1, max_orders)):
                records.extend(
                    self._order(
                        profile,
                        when,
                        with_logistics=self._rng.random() >= drop_logistics_rate,
                        with_shipping=self._rng.random() >= drop_shipping_rate,
                    )
                )
                # Repeat orders are weeks apart so timing separates them.
                when += timedelta(days=self._rng.randint(14, 90))

        foreign = int(len(records) * foreign_rate)
        for _ in range(foreign):
            source = self._rng.choice(records)
            records.append(dict(source, id=self._next_id("other"), Pipeline={"name": "Sales Pipeline", "id": "2"}))

        self._rng.shuffle(records)
        return records

    def _profile(self, idx: int, chat_only: bool) -> dict[str, Any]:
        first_name = self._rng.choice(_FIRST_NAMES)
        last_name = self._rng.choice(_LAST_NAMES)
        city, region = self._rng.choice(_CITIES)
        street = self._rng.choice(_STREETS)
        return {
            "name": f"{first_name} {last_name}",
            "phone": None if chat_only else f"3{100000000 + idx:09d}",
            "chat_link": f"https://dash.callbell.eu/chat/{500000 + idx}" if chat_only or idx % 2 == 0 else None,
            "email": f"{first_name}.{last_name}{idx % 97}@example.com".lower(),
            "address": f"{street} {1 + idx % 120} # {10 + idx % 80}-{1 + idx % 60}",
            "city": city,
            "region": region,
        }

    def _order(
        self,
        profile: dict[str, Any],
        sales_created: datetime,
        with_logistics: bool,
        with_shipping: bool,
    ) -> list[dict[str, Any]]:
        amount = float(self._rng.choice([89900, 119900, 159900, 239800]))
        sales_modified = sales_created + timedelta(minutes=self._rng.randint(5, 50))
        records = [
            self._deal(profile, self._layout.sales, "sales", sales_created, sales_modified, amount, _SALES_STAGES)
        ]
        if not with_logistics:
            return records

        logistics_created = sales_modified + timedelta(minutes=self._rng.randint(1, 20))
        logistics_modified = logistics_created + timedelta(minutes=self._rng.randint(1, 30))
        records.append(
            self._deal(
                profile,
                self._layout.logistics,
                "logistics",
                logistics_created,
                logistics_modified,
                amount,
                _LOGISTICS_STAGES,
            )
        )
        if not with_shipping:
            return records

        shipping_created = logistics_modified + timedelta(minutes=self._rng.randint(1, 30))
        records.append(
            self._deal(
                profile,
                self._layout.shipping,
                "shipping",
                shipping_created,
                shipping_created + timedelta(hours=self._rng.randint(1, 72)),
                amount,
                _SHIPPING_STAGES,
            )
        )
        return records

    def _deal(
        self,
        profile: dict[str, Any],
        sub_pipeline: str,
        prefix: str,
        created: datetime,
        modified: datetime,
        amount: float,
        stages: list[str],
    ) -> dict[str, Any]:
        return {
            "id": self._next_id(prefix),
            "Deal_Name": self._name_variant(profile["name"]),
            "Telefono": self._phone_variant(profile["phone"]),
            "email": profile["email"] if self._rng.random() < 0.5 else None,
            "CallBell": profile["chat_link"],
            "Direcci_n": profile["address"],
            "Municipio_Dept": profile["city"],
            "Departamento": profile["region"],
            "Amount": amount,
            "Stage": self._rng.choice(stages),
            "Pipeline": {"name": self._layout.pipeline or "Ventas Somnio", "id": "1"},
            "Sub_Pipeline": sub_pipeline,
            "Created_Time": created.isoformat(),
            "Modified_Time": modified.isoformat(),
        }

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:07d}"

    def _phone_variant(self, phone: str | None) -> str | None:
        if phone is None:
            return None
        variant = self._rng.choice(["plain", "plus", "country", "spaced", "dashed"])
        if variant == "plus":
            return f"+57{phone}"
        if variant == "country":
            return f"57{phone}"
        if variant == "spaced":
            return f"+57 {phone[:3]} {phone[3:6]} {phone[6:]}"
        if variant == "dashed":
            return f"({phone[:3]}) {phone[3:6]}-{phone[6:]}"
        return phone

    def _name_variant(self, name: str) -> str:
        variant = self._rng.choice(["same", "upper", "lower", "spaced"])
        if variant == "upper":
            return name.upper()
        if variant == "lower":
            return name.lower()
        if variant == "spaced":
            return f"  {name}  "
        return name
