"""
Unit tests for images.py - product classification and memoized resolution.
"""

import os

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import Product
from images import ImageResolver, PLACEHOLDER_IMAGES, classify_product
from tests.test_logger import test_logger


class TestClassifyProduct:
    """Test suite for classify_product."""

    def setup_method(self):
        test_logger.log_section("TESTING: images.py - classify_product")

    def test_title_keywords(self):
        test_logger.log_test_start("images.py", "classify_product", "title")

        try:
            assert classify_product("Dell XPS 13 Plus") == "laptop"
            assert classify_product("OptiPlex Micro") == "desktop"
            assert classify_product("UltraSharp 32 4K") == "monitor"
            assert classify_product("PowerEdge R760") == "server"
            assert classify_product("Precision 3680 Tower") == "workstation"
            assert classify_product("Alienware Aurora") == "gaming"
            assert classify_product("Wireless Mouse") == "default"

            test_logger.log_test_pass("images.py", "classify_product", "title")
        except Exception as e:
            test_logger.log_test_fail("images.py", "classify_product", "title", str(e))
            raise

    def test_category_overrides_title(self):
        test_logger.log_test_start("images.py", "classify_product", "category_override")

        try:
            assert classify_product("XPS Desktop Bundle", "Monitors") == "monitor"
            # Unrecognised categories leave the title classification in place
            assert classify_product("XPS 15", "Electronics") == "laptop"

            test_logger.log_test_pass("images.py", "classify_product", "category_override")
        except Exception as e:
            test_logger.log_test_fail("images.py", "classify_product", "category_override", str(e))
            raise


class TestImageResolver:
    """Test suite for ImageResolver."""

    def setup_method(self):
        test_logger.log_section("TESTING: images.py - ImageResolver")
        self.resolver = ImageResolver()

    def test_resolve_memoizes(self):
        test_logger.log_test_start("images.py", "ImageResolver.resolve", "memo")

        try:
            first = self.resolver.resolve("Inspiron 14", "laptops")
            second = self.resolver.resolve("Inspiron 14", "laptops")

            assert first is second
            assert first.url == PLACEHOLDER_IMAGES["laptop"]
            assert first.alt_text == "Inspiron 14 - Dell Product"
            assert first.source == "placeholder"
            assert len(self.resolver) == 1

            self.resolver.resolve("Inspiron 14", None)
            assert len(self.resolver) == 2

            test_logger.log_test_pass("images.py", "ImageResolver.resolve", "memo")
        except Exception as e:
            test_logger.log_test_fail("images.py", "ImageResolver.resolve", "memo", str(e))
            raise

    def test_enrich_fills_missing_only(self):
        test_logger.log_test_start("images.py", "ImageResolver.enrich", "missing_only")

        try:
            products = [
                Product(id="1", title="Latitude 7440"),
                Product(id="2", title="Some Monitor", image="https://cdn.example/own.png"),
            ]
            enriched = self.resolver.enrich(products)

            assert enriched[0].image == PLACEHOLDER_IMAGES["laptop"]
            assert enriched[1].image == "https://cdn.example/own.png"
            assert products[0].image is None

            test_logger.log_test_pass("images.py", "ImageResolver.enrich", "missing_only")
        except Exception as e:
            test_logger.log_test_fail("images.py", "ImageResolver.enrich", "missing_only", str(e))
            raise
