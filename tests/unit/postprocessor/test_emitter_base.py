"""
Unit tests for the shared emitter plumbing: number formats, config and dispatch.
"""

import pytest

from cellmotion.core.exceptions import PostProcessorError
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.postprocessor import EmitterConfig, NumberFormat, RapidEmitter, URScriptEmitter, emitter_for


class TestNumberFormat:
    """Tests for locale independent number rendering."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (1.0, "1"),
            (2.5, "2.5"),
            (0.1234, "0.123"),
            (-0.0001, "0"),
            (-12.3456, "-12.346"),
            (1000.0, "1000"),
        ],
    )
    def test_default(self, value, expected):
        """Up to three decimals, trailing zeros dropped."""
        assert NumberFormat()(value) == expected

    def test_separator(self):
        """The separator is explicit."""
        assert NumberFormat(2, ",")(3.14159) == "3,14"

    def test_zero_decimals(self):
        assert NumberFormat(0)(2.6) == "3"

    def test_dict_round_trip(self):
        """Unknown keys are ignored when loading."""
        number_format = NumberFormat.from_dict({"decimals": 5, "separator": ".", "unused": 1})
        assert number_format == NumberFormat(5)
        assert number_format.to_dict() == {"decimals": 5, "separator": "."}


class TestEmitterConfig:
    """Tests for EmitterConfig."""

    def test_defaults(self):
        config = EmitterConfig()
        assert config.format_name == "rapid"
        assert config.position(1.23456) == "1.235"
        assert config.rotation(1.23456789) == "1.23457"

    def test_from_dict_nested_formats(self):
        """Number formats load from nested mappings."""
        config = EmitterConfig.from_dict({"format_name": "urscript", "position": {"decimals": 1}})
        assert config.format_name == "urscript"
        assert config.position(1.26) == "1.3"
        assert config.joints == NumberFormat(4)


class TestEmitterFor:
    """Tests for picking an emitter by manufacturer."""

    def test_abb(self):
        emitter = emitter_for(Manufacturer.ABB)
        assert isinstance(emitter, RapidEmitter)
        assert emitter.file_extension == ".mod"

    def test_ur(self):
        emitter = emitter_for(Manufacturer.UR)
        assert isinstance(emitter, URScriptEmitter)
        assert emitter.config.indent == "  "

    def test_config_passed_through(self):
        config = EmitterConfig(position=NumberFormat(1))
        assert emitter_for(Manufacturer.ABB, config).config is config

    @pytest.mark.parametrize("manufacturer", [Manufacturer.KUKA, Manufacturer.STAUBLI])
    def test_not_implemented(self, manufacturer):
        """Brands without an emitter raise PostProcessorError."""
        with pytest.raises(PostProcessorError, match="Code generation not implemented"):
            emitter_for(manufacturer)
