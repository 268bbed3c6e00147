"""
Tests for platform detection.
"""

import pytest

from walletpass.models.internal_models import DetectionMethod, Platform, PlatformDetectionResult
from walletpass.services.platform_detector import (
    DETECTION_RULES,
    PlatformDetector,
    detect_browser,
    detect_os,
    is_low_confidence,
)

LINUX_SAFARI_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/605.1.15 Version/17.0 Safari/605.1.15"


class TestPlatformDetector:
    """Test cases for PlatformDetector."""

    @pytest.fixture
    def detector(self):
        return PlatformDetector(default_platform=Platform.APPLE)

    @pytest.mark.parametrize("hint,expected", [
        ("apple", Platform.APPLE),
        ("iOS", Platform.APPLE),
        ("GOOGLE", Platform.GOOGLE),
        ("android", Platform.GOOGLE),
    ])
    def test_explicit_hint(self, detector, hint, expected):
        result = detector.detect(hint, None)

        assert result.platform == expected
        assert result.method == DetectionMethod.EXPLICIT_PARAMETER
        assert result.confidence == 1.0
        assert result.source == f"Explicit parameter: {hint}"

    def test_explicit_hint_beats_signature(self, detector, user_agents):
        result = detector.detect("google", user_agents["iphone"])

        assert result.platform == Platform.GOOGLE
        assert result.method == DetectionMethod.EXPLICIT_PARAMETER

    def test_invalid_hint_falls_through(self, detector, user_agents):
        result = detector.detect("toaster", user_agents["android"])

        assert result.platform == Platform.GOOGLE
        assert result.method == DetectionMethod.SIGNAL_MATCH
        assert result.confidence == 1.0

    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature_uses_default(self, detector, signature):
        result = detector.detect(None, signature)

        assert result.platform == Platform.APPLE
        assert result.method == DetectionMethod.DEFAULT
        assert result.confidence == 0.0
        assert result.source == "no signature present"

    def test_whitespace_signature_uses_fallback_rule(self, detector):
        result = detector.detect(None, "   ")

        assert result.platform == Platform.APPLE
        assert result.method == DetectionMethod.DEFAULT
        assert result.confidence == 0.50
        assert result.source == "Unknown signature (market-share fallback)"

    def test_missing_signature_uses_configured_default(self):
        detector = PlatformDetector(default_platform=Platform.GOOGLE)

        assert detector.detect(None, "").platform == Platform.GOOGLE
        assert detector.detect(None, "curl/8.4.0").platform == Platform.GOOGLE

    def test_unknown_default_rejected(self):
        with pytest.raises(ValueError):
            PlatformDetector(default_platform=Platform.UNKNOWN)

    @pytest.mark.parametrize("agent,platform,method,confidence", [
        ("iphone", Platform.APPLE, DetectionMethod.SIGNAL_MATCH, 1.0),
        ("ipad", Platform.APPLE, DetectionMethod.SIGNAL_MATCH, 1.0),
        ("android", Platform.GOOGLE, DetectionMethod.SIGNAL_MATCH, 1.0),
        ("mac_safari", Platform.APPLE, DetectionMethod.HEURISTIC, 0.75),
        ("windows_chrome", Platform.GOOGLE, DetectionMethod.HEURISTIC, 0.55),
        ("opera_mini_mobile", Platform.APPLE, DetectionMethod.HEURISTIC, 0.60),
        ("googlebot", Platform.APPLE, DetectionMethod.DEFAULT, 0.0),
        ("curl", Platform.APPLE, DetectionMethod.DEFAULT, 0.0),
        ("linux_firefox", Platform.APPLE, DetectionMethod.DEFAULT, 0.50),
    ])
    def test_signature_rules(self, detector, user_agents, agent, platform, method, confidence):
        result = detector.detect(None, user_agents[agent])

        assert result.platform == platform
        assert result.method == method
        assert result.confidence == confidence

    def test_safari_without_mac(self, detector):
        result = detector.detect(None, LINUX_SAFARI_UA)

        assert result.platform == Platform.APPLE
        assert result.method == DetectionMethod.HEURISTIC
        assert result.confidence == 0.70

    def test_macos_rule_precedes_safari_rule(self, detector, user_agents):
        # Matches both the macOS and the Safari rungs; the earlier one wins
        assert detector.match_rule(user_agents["mac_safari"]).name == "macos_desktop"

    def test_android_precedes_mobile_heuristics(self, detector, user_agents):
        assert detector.match_rule(user_agents["android"]).name == "android"

    def test_rules_end_with_catch_all(self):
        assert DETECTION_RULES[-1].name == "fallback"
        assert DETECTION_RULES[-1].matches("anything at all")

    def test_detection_is_deterministic(self, detector, user_agents):
        first = detector.detect(None, user_agents["windows_chrome"])
        second = detector.detect(None, user_agents["windows_chrome"])
        assert first == second

    def test_never_returns_unknown(self, detector, user_agents):
        for signature in list(user_agents.values()) + ["", "toaster"]:
            assert detector.detect("toaster", signature).platform != Platform.UNKNOWN

    def test_describe_signature(self, detector, user_agents):
        info = detector.describe_signature(user_agents["iphone"])

        assert info.detected_platform == Platform.APPLE
        assert info.is_mobile is True
        assert info.is_desktop is False
        assert info.is_bot is False
        assert info.browser_family == "Safari"
        assert info.os_family == "iOS (iPhone)"

    def test_describe_desktop_and_bot(self, detector, user_agents):
        desktop = detector.describe_signature(user_agents["windows_chrome"])
        assert desktop.is_desktop is True
        assert desktop.is_mobile is False
        assert desktop.os_family == "Windows"

        bot = detector.describe_signature(user_agents["googlebot"])
        assert bot.is_bot is True

    def test_describe_missing_signature(self, detector):
        info = detector.describe_signature(None)

        assert info.signature == ""
        assert info.detected_platform == Platform.APPLE
        assert info.browser_family == "Unknown"


class TestSignatureClassification:
    """Test cases for browser and OS classification helpers."""

    @pytest.mark.parametrize("agent,browser", [
        ("windows_edge", "Edge"),
        ("windows_chrome", "Chrome"),
        ("android", "Chrome"),
        ("iphone", "Safari"),
        ("linux_firefox", "Firefox"),
        ("curl", "Unknown"),
    ])
    def test_detect_browser(self, user_agents, agent, browser):
        assert detect_browser(user_agents[agent].lower()) == browser

    @pytest.mark.parametrize("agent,os_family", [
        ("iphone", "iOS (iPhone)"),
        ("ipad", "iOS (iPad)"),
        ("android", "Android"),
        ("mac_safari", "macOS"),
        ("windows_chrome", "Windows"),
        ("linux_firefox", "Linux"),
        ("curl", "Unknown"),
    ])
    def test_detect_os(self, user_agents, agent, os_family):
        assert detect_os(user_agents[agent].lower()) == os_family


class TestLowConfidence:
    """Test cases for the low confidence flag."""

    def _result(self, method, confidence):
        return PlatformDetectionResult(
            platform=Platform.APPLE, method=method, confidence=confidence, source="test"
        )

    def test_below_threshold(self):
        assert is_low_confidence(self._result(DetectionMethod.HEURISTIC, 0.55), 0.70) is True

    def test_at_threshold(self):
        assert is_low_confidence(self._result(DetectionMethod.HEURISTIC, 0.70), 0.70) is False

    def test_explicit_never_low(self):
        assert is_low_confidence(self._result(DetectionMethod.EXPLICIT_PARAMETER, 1.0), 0.70) is False

    def test_default_threshold_from_settings(self):
        assert is_low_confidence(self._result(DetectionMethod.DEFAULT, 0.0)) is True

    def test_confidence_range_validated(self):
        with pytest.raises(ValueError):
            self._result(DetectionMethod.HEURISTIC, 1.5)
