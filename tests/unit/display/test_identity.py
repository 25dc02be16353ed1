"""
Tests for tegrasettings.display.identity module.
"""

from unittest.mock import MagicMock, call

import pytest

from tegrasettings.core.errors import QueryFailed, ServiceUnavailable
from tegrasettings.display.identity import (
    DisplayIdentityResolver,
    mode_preference_key,
    string_hash,
)
from tegrasettings.platform.edid import EdidInfo
from tegrasettings.platform.hal import Connector


def edid_source(answers):
    """EDID query answering from a dict; missing connectors fail."""
    def _query(connector):
        if connector not in answers:
            raise QueryFailed(f"nothing on {connector}", connector)
        return answers[connector]
    return _query


class TestStringHash:
    """Tests for the persistent string hash."""

    def test_known_values(self):
        """Test hash matches the values stored by earlier releases."""
        assert string_hash("hello") == 99162322
        assert string_hash("Internal Panel") == -2046558495
        assert string_hash("DEL - U2415") == -321234733
        assert string_hash("Unknown") == 1379812394

    def test_empty_string(self):
        """Test empty string hashes to zero."""
        assert string_hash("") == 0

    def test_non_bmp_characters(self):
        """Test characters outside the BMP hash as surrogate pairs."""
        high, low = 0xD83D, 0xDCFA
        expected = (31 * high + low) & 0xFFFFFFFF
        assert string_hash("\U0001F4FA") == expected

    def test_lone_surrogate(self):
        """Test an unpaired surrogate hashes as its code unit."""
        assert string_hash("\ud800") == 0xD800
        assert string_hash("a\udc00") == (31 * ord("a") + 0xDC00)

    def test_result_is_signed_32_bit(self):
        """Test hash stays in the signed 32-bit range."""
        value = string_hash("a fairly long monitor label to overflow the hash")
        assert -2**31 <= value < 2**31


class TestComputeLabel:
    """Tests for DisplayIdentityResolver.compute_label."""

    def test_manufacturer_and_name(self):
        """Test label combines manufacturer and monitor name."""
        edid = EdidInfo(manufacturer_id="DEL", monitor_name="U2415")
        assert DisplayIdentityResolver.compute_label(edid, 1) == "DEL - U2415"

    def test_name_without_manufacturer(self):
        """Test label is the bare monitor name without a manufacturer."""
        edid = EdidInfo(manufacturer_id="", monitor_name="U2415")
        assert DisplayIdentityResolver.compute_label(edid, 2) == "U2415"

    def test_name_wins_on_panel(self):
        """Test a named panel uses its name, not the panel label."""
        edid = EdidInfo(manufacturer_id="SHP", monitor_name="LQ070")
        assert DisplayIdentityResolver.compute_label(edid, Connector.PANEL) == "SHP - LQ070"

    def test_internal_panel_without_name(self):
        """Test unnamed display on the panel connector."""
        edid = EdidInfo(manufacturer_id="SHP")
        assert DisplayIdentityResolver.compute_label(edid, Connector.PANEL) == "Internal Panel"

    @pytest.mark.parametrize("connector", [Connector.HDMI1, Connector.HDMI2])
    def test_unknown_without_name(self, connector):
        """Test unnamed display on an external connector."""
        edid = EdidInfo(manufacturer_id="DEL")
        assert DisplayIdentityResolver.compute_label(edid, connector) == "Unknown"

    def test_none_fields_treated_as_empty(self):
        """Test None fields do not raise."""
        edid = EdidInfo(manufacturer_id=None, monitor_name=None)
        assert DisplayIdentityResolver.compute_label(edid, 1) == "Unknown"


class TestComputeUid:
    """Tests for DisplayIdentityResolver.compute_uid."""

    def test_uid_is_hash_of_label(self, dell_edid):
        """Test uid is the decimal hash of the label."""
        assert DisplayIdentityResolver.compute_uid(dell_edid, 1) == "-321234733"

    def test_deterministic(self, dell_edid):
        """Test repeated calls yield the same uid."""
        first = DisplayIdentityResolver.compute_uid(dell_edid, 1)
        second = DisplayIdentityResolver.compute_uid(EdidInfo("DEL", "U2415"), 1)
        assert first == second

    def test_internal_panel_uid(self):
        """Test unnamed internal panel uid."""
        assert DisplayIdentityResolver.compute_uid(EdidInfo(), 0) == "-2046558495"


class TestBuildUidMap:
    """Tests for DisplayIdentityResolver.build_uid_map."""

    def test_partial_results(self, dell_edid):
        """Test failing connectors are skipped."""
        query = edid_source({0: EdidInfo(), 2: dell_edid})
        uid_map = DisplayIdentityResolver.build_uid_map(query)

        assert uid_map == {
            DisplayIdentityResolver.compute_uid(EdidInfo(), 0): 0,
            DisplayIdentityResolver.compute_uid(dell_edid, 2): 2,
        }

    def test_queries_full_range(self):
        """Test every connector from panel to HDMI2 is queried once."""
        query = MagicMock(side_effect=QueryFailed("disconnected"))
        DisplayIdentityResolver.build_uid_map(query)
        assert query.call_args_list == [call(0), call(1), call(2)]

    def test_no_displays(self):
        """Test empty map when nothing answers."""
        assert DisplayIdentityResolver.build_uid_map(edid_source({})) == {}

    def test_service_unavailable_skipped(self, dell_edid):
        """Test generic service failures are skipped too."""
        def query(connector):
            if connector == 1:
                raise ServiceUnavailable("hal gone")
            return dell_edid if connector == 2 else EdidInfo()

        uid_map = DisplayIdentityResolver.build_uid_map(query)
        assert sorted(uid_map.values()) == [0, 2]


class TestResolveModeIndex:
    """Tests for DisplayIdentityResolver.resolve_mode_index."""

    def test_panel_always_default(self):
        """Test panel returns 0 without queries or lookups."""
        query = MagicMock()
        lookup = MagicMock(return_value="5")

        assert DisplayIdentityResolver.resolve_mode_index(0, query, lookup) == 0
        query.assert_not_called()
        lookup.assert_not_called()

    def test_stored_preference(self, dell_edid):
        """Test stored preference is returned."""
        uid = DisplayIdentityResolver.compute_uid(dell_edid, 2)
        prefs = {f"mode_{uid}": "3"}

        index = DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), prefs.get)
        assert index == 3

    def test_missing_preference(self, dell_edid):
        """Test missing preference gives default."""
        assert DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), {}.get) == 0

    def test_malformed_preference(self, dell_edid):
        """Test non-numeric preference gives default."""
        uid = DisplayIdentityResolver.compute_uid(dell_edid, 2)
        prefs = {f"mode_{uid}": "fast"}
        assert DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), prefs.get) == 0

    @pytest.mark.parametrize("value", ["1_0", " 3 ", "3\n", "2147483648", "\u0663", "\uff13", "1.0", ""])
    def test_only_plain_decimal_accepted(self, dell_edid, value):
        """Test values that are not plain ASCII decimal integers give default."""
        uid = DisplayIdentityResolver.compute_uid(dell_edid, 2)
        prefs = {f"mode_{uid}": value}
        assert DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), prefs.get) == 0

    def test_plus_sign_accepted(self, dell_edid):
        """Test an explicit plus sign is accepted."""
        uid = DisplayIdentityResolver.compute_uid(dell_edid, 2)
        prefs = {f"mode_{uid}": "+1"}
        assert DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), prefs.get) == 1

    def test_negative_preference(self, dell_edid):
        """Test a negative stored index is returned as is."""
        uid = DisplayIdentityResolver.compute_uid(dell_edid, 2)
        prefs = {f"mode_{uid}": "-2"}
        assert DisplayIdentityResolver.resolve_mode_index(2, edid_source({2: dell_edid}), prefs.get) == -2

    def test_lookup_key(self, dell_edid):
        """Test the preference key is mode_ plus uid."""
        lookup = MagicMock(return_value=None)
        DisplayIdentityResolver.resolve_mode_index(1, edid_source({1: dell_edid}), lookup)
        lookup.assert_called_once_with("mode_-321234733")

    def test_query_failure_propagates(self):
        """Test EDID failure aborts resolution."""
        with pytest.raises(ServiceUnavailable):
            DisplayIdentityResolver.resolve_mode_index(1, edid_source({}), {}.get)


class TestApplyMode:
    """Tests for DisplayIdentityResolver.apply_mode."""

    def test_sets_mode_then_refreshes(self):
        """Test setter runs before the forced layout refresh."""
        calls = MagicMock()
        ok = DisplayIdentityResolver.apply_mode(2, 1, calls.set_mode, calls.refresh)

        assert ok is True
        assert calls.mock_calls == [call.set_mode(2, 1), call.refresh(True, True)]

    def test_setter_failure_skips_refresh(self):
        """Test failed setter never refreshes and reports failure."""
        setter = MagicMock(side_effect=ServiceUnavailable("hal gone"))
        refresher = MagicMock()

        ok = DisplayIdentityResolver.apply_mode(2, 1, setter, refresher)

        assert ok is False
        setter.assert_called_once_with(2, 1)
        refresher.assert_not_called()


def test_mode_preference_key():
    assert mode_preference_key("123") == "mode_123"
