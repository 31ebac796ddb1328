"""
Tests for AccountTab
"""

import pytest

from storefront.account import AccountTab


class TestAccountTab:
    @pytest.mark.parametrize(
        "segment,expected",
        [
            ("orders", AccountTab.ORDERS),
            ("Wishlist", AccountTab.WISHLIST),
            (" security ", AccountTab.SECURITY),
            ("notifications", AccountTab.NOTIFICATIONS),
        ],
    )
    def test_parse_known_segments(self, segment, expected):
        assert AccountTab.parse(segment) is expected

    @pytest.mark.parametrize("segment", [None, "", "admin", "orders/12"])
    def test_unknown_segments_open_profile(self, segment):
        assert AccountTab.parse(segment) is AccountTab.PROFILE

    def test_tab_set_is_closed(self):
        assert {tab.value for tab in AccountTab} == {
            "profile",
            "orders",
            "wishlist",
            "addresses",
            "payment",
            "security",
            "notifications",
        }

    def test_requires_profile(self):
        assert AccountTab.PROFILE.requires_profile
        assert AccountTab.SECURITY.requires_profile
        assert not AccountTab.ORDERS.requires_profile
