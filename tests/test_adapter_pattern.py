import unittest
from unittest.mock import MagicMock

from bindery import Injector, Registry


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def pay(self, amount_usd: float, reference: str) -> bool:
        print(f"Stripe charged ${amount_usd} for {reference}")  # noqa: T201
        return True


class StripeAdapter:
    def __init__(self, sdk: StripeSdk, logger: NullLogger, usd_per_cent: float = 0.01) -> None:
        self._logger = logger
        self._sdk = sdk
        self._usd_per_cent = usd_per_cent

    def charge(self, order_id: str, amount_cents: int) -> None:
        self._logger.info("adapting to stripe sdk api")
        amount_usd = amount_cents * self._usd_per_cent
        ok = self._sdk.pay(amount_usd, reference=order_id)
        if not ok:
            msg = "Stripe payment failed"
            raise RuntimeError(msg)


class Checkout:
    def __init__(self, payments: StripeAdapter) -> None:
        self.payments = payments

    def place(self, order_id: str) -> None:
        self.payments.charge(order_id, 5000)


class TestRegistryWiresAdapterToThirdPartySDK(unittest.TestCase):
    registry: Registry

    def setUp(self):
        self.registry = Registry()
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.registry.provide("sdk", self.stripe_sdk)
        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)
        self.registry.provide("logger", self.logger)
        self.registry.provide("usd_per_cent", 0.0125)

    def test_adapter_calls_adaptee(self):
        client = self.registry.create(StripeAdapter)
        client.charge("order-123", 5000)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.0125 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")

    def test_injected_function_reaches_the_adaptee(self):
        self.registry.provide("payments", self.registry.create(StripeAdapter))

        def place(payments: StripeAdapter):
            payments.charge("order-7", 100)

        self.registry.inject(place)()

        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-7"


class CentsAdapter(StripeAdapter):
    def __init__(self, sdk: StripeSdk, logger: NullLogger) -> None:
        super().__init__(sdk, logger)


class CentsCheckout(Checkout):
    def __init__(self, payments: CentsAdapter) -> None:
        super().__init__(payments)


class TestInjectorAutoWiresAdapter(unittest.TestCase):
    cont: Injector

    def setUp(self):
        self.cont = Injector()
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(return_value=True)
        self.cont.bind(StripeSdk, self.stripe_sdk)

    def test_adapter_is_built_from_bound_and_constructed_dependencies(self):
        checkout = self.cont.get(CentsCheckout)
        checkout.place("order-9")

        adapter = self.cont.get(CentsAdapter)
        assert checkout.payments is adapter
        assert adapter._sdk is self.stripe_sdk
        assert self.cont.get(NullLogger) is adapter._logger
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-9"

    def test_annotated_function_uses_the_bound_sdk(self):
        checkout = self.cont.get(CentsCheckout)
        seen = []

        def audit(sdk: StripeSdk, payments: CentsAdapter):
            seen.append((sdk, payments))

        self.cont.annotate(audit)()

        assert seen == [(self.stripe_sdk, checkout.payments)]
