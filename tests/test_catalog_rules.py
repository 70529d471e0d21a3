import pytest

from helpers import make_service, make_variant
from convo_core.schemas.catalog import CatalogNeed
from convo_core.services.catalog_rules import (
    detect_catalog_need,
    infer_size_token,
    infer_weight_lbs,
    is_plan,
    mentions_plans,
    mentions_variant_hint,
    pick_variant,
    variant_weight_bounds,
    variants_are_size_based,
    weight_bounds_from_label,
)


class TestDetectCatalogNeed:
    @pytest.mark.parametrize(
        "text,need",
        [
            ("¿Cuánto cuesta el baño?", CatalogNeed.PRICE),
            ("precio", CatalogNeed.PRICE),
            ("how much is a full groom", CatalogNeed.PRICE),
            ("¿Qué incluye el paquete?", CatalogNeed.INCLUDES),
            ("how long does it take", CatalogNeed.DURATION),
            ("send me the booking link", CatalogNeed.LINK),
            ("¿Qué servicios tienen?", CatalogNeed.LIST),
            ("tell me about the membership", CatalogNeed.ANY),
        ],
    )
    def test_families(self, text, need):
        assert detect_catalog_need(text) == need

    def test_price_wins_over_list(self):
        assert detect_catalog_need("precios de los servicios") == CatalogNeed.PRICE

    @pytest.mark.parametrize("text", ["", None, "hola", "20 lbs", "gracias!"])
    def test_no_need(self, text):
        assert detect_catalog_need(text) is None


class TestHints:
    @pytest.mark.parametrize(
        "text,token",
        [
            ("small", "small"),
            ("es pequeño", "small"),
            ("Grande", "large"),
            ("extra large please", "xl"),
            ("mediano", "medium"),
            ("hola", None),
        ],
    )
    def test_infer_size_token(self, text, token):
        assert infer_size_token(text) == token

    @pytest.mark.parametrize(
        "text,weight",
        [
            ("20 lbs", 20.0),
            ("pesa 45 libras", 45.0),
            ("my dog is 8lb", 8.0),
            ("25.5 lbs", 25.5),
            ("pesa 12,5 libras", 12.5),
            ("20", None),
        ],
    )
    def test_infer_weight(self, text, weight):
        assert infer_weight_lbs(text) == weight

    def test_variant_hint(self):
        assert mentions_variant_hint("20 lbs")
        assert mentions_variant_hint("large")
        assert mentions_variant_hint("16-30")
        assert not mentions_variant_hint("precio del baño")

    def test_plans(self):
        assert mentions_plans("¿qué planes tienen?")
        assert not mentions_plans("precio del corte")


class TestWeightBounds:
    @pytest.mark.parametrize(
        "label,bounds",
        [
            ("0-15 lbs", (0.0, 15.0)),
            ("16–30 lbs", (16.0, 30.0)),
            ("16-30lbs", (16.0, 30.0)),
            ("31+ lbs", (31.0, None)),
            ("up to 20 lbs", (None, 20.0)),
            ("Gold", (None, None)),
            ("2-pack", (None, None)),
        ],
    )
    def test_from_label(self, label, bounds):
        assert weight_bounds_from_label(label) == bounds

    def test_columns_take_precedence(self):
        variant = make_variant(1, 1, "0-15 lbs", min_weight_lbs=0, max_weight_lbs=10)
        assert variant_weight_bounds(variant) == (0.0, 10.0)


class TestSizeBasedVariants:
    def test_structured_columns(self):
        service = make_service(1, "Bath")
        variants = [make_variant(1, 1, "A", size_token="small")]
        assert variants_are_size_based(service, variants)

    def test_weight_names(self):
        service = make_service(1, "Bath")
        variants = [make_variant(1, 1, "0-15 lbs"), make_variant(2, 1, "16-30 lbs")]
        assert variants_are_size_based(service, variants)

    def test_option_sets_are_not_size_based(self):
        service = make_service(1, "Cycling")
        variants = [make_variant(1, 1, "Bronze"), make_variant(2, 1, "Gold")]
        assert not variants_are_size_based(service, variants)

    def test_plans_never_size_based(self):
        service = make_service(1, "Membership", service_type="plan")
        variants = [make_variant(1, 1, "Small dog plan", size_token="small")]
        assert is_plan(service)
        assert not variants_are_size_based(service, variants)

    def test_no_variants(self):
        assert not variants_are_size_based(make_service(1, "Bath"), [])


class TestPickVariant:
    variants = [
        make_variant(1, 1, "0-15 lbs", size_token="small"),
        make_variant(2, 1, "16-30 lbs", size_token="medium"),
        make_variant(3, 1, "31+ lbs", size_token="large"),
    ]

    def test_weight_in_range_first(self):
        assert pick_variant(self.variants, "small", 20).id == 2

    def test_decimal_weight_keeps_its_range(self):
        assert pick_variant(self.variants, None, infer_weight_lbs("25.5 lbs")).id == 2

    def test_open_ended_range(self):
        assert pick_variant(self.variants, None, 80).id == 3

    def test_size_token(self):
        assert pick_variant(self.variants, "large", None).id == 3

    def test_first_as_fallback(self):
        assert pick_variant(self.variants, "xl", None).id == 1

    def test_empty(self):
        assert pick_variant([], "small", None) is None
