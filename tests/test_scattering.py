"""Tests for pdfcalc.scattering tables."""

import pytest

from pdfcalc.scattering import (
    ElectronNumberTable,
    XrayScatteringTable,
    create_scattering_table,
    scattering_tables,
)


class TestXrayScatteringTable:
    """Tests for the xray table."""

    @pytest.mark.parametrize("smbl, expected", [
        ("H", 1.0),
        ("Na", 11.0),
        ("Na+", 10.0),
        ("O2-", 10.0),
        ("Fe", 26.0),
    ])
    def test_electron_count(self, smbl, expected):
        assert XrayScatteringTable().lookup(smbl) == expected

    def test_unknown_symbol_raises(self):
        with pytest.raises(ValueError, match="Unknown atom type"):
            XrayScatteringTable().lookup("Xx")

    def test_custom_value(self):
        table = XrayScatteringTable()
        table.set_custom("Na", 3.0)
        assert table.lookup("Na") == 3.0
        assert table.custom_symbols() == ("Na",)

    def test_reset_custom(self):
        table = XrayScatteringTable()
        table.set_custom("Na", 3.0)
        table.set_custom("Cl", 4.0)
        table.reset_custom("Na")
        assert table.lookup("Na") == 11.0
        assert table.custom_symbols() == ("Cl",)
        table.reset_custom()
        assert table.custom_symbols() == ()

    def test_clone_keeps_custom_values(self):
        table = XrayScatteringTable()
        table.set_custom("Na", 3.0)
        clone = table.clone()
        clone.reset_custom()
        assert table.lookup("Na") == 3.0
        assert clone.lookup("Na") == 11.0


class TestScatteringRegistry:
    """Registration of scattering tables."""

    def test_registered_types(self):
        assert scattering_tables.types() == ("electronnumber", "xray")

    def test_electronnumber(self):
        table = create_scattering_table("electronnumber")
        assert isinstance(table, ElectronNumberTable)
        assert table.lookup("Cl-") == 18.0
