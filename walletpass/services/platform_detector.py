"""
Platform detection for wallet pass downloads.

Decides Apple vs Google from an optional explicit hint and the client's
self-reported signature (User-Agent). Detection priority:

1. Explicit hint (``?platform=``), when it names a known platform
2. Missing signature -> default platform, zero confidence
3. Ordered signature rules, first match wins

The signature rules overlap (a macOS Safari signature matches both the macOS
and the Safari rule), so their order in ``DETECTION_RULES`` is part of the
contract.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from walletpass.config import settings
from walletpass.models.internal_models import (
    ClientSignatureInfo,
    DetectionMethod,
    Platform,
    PlatformDetectionResult,
)

logger = logging.getLogger(__name__)

# Marker for rules that resolve to the configured default platform
DEFAULT = Platform.UNKNOWN


def contains_any(text: str, values: Iterable[str]) -> bool:
    return any(value in text for value in values)


@dataclass(frozen=True)
class DetectionRule:
    """One rung of the signature ladder. ``predicate`` sees the lower-cased signature."""

    name: str
    predicate: Callable[[str], bool]
    platform: Platform
    method: DetectionMethod
    confidence: float
    source: str

    def matches(self, signature: str) -> bool:
        return self.predicate(signature)


DETECTION_RULES: Tuple[DetectionRule, ...] = (
    DetectionRule(
        name="ios_device",
        predicate=lambda ua: contains_any(ua, ("iphone", "ipad", "ipod")),
        platform=Platform.APPLE,
        method=DetectionMethod.SIGNAL_MATCH,
        confidence=1.0,
        source="iOS device in signature",
    ),
    DetectionRule(
        name="android",
        predicate=lambda ua: "android" in ua,
        platform=Platform.GOOGLE,
        method=DetectionMethod.SIGNAL_MATCH,
        confidence=1.0,
        source="Android in signature",
    ),
    DetectionRule(
        name="macos_desktop",
        predicate=lambda ua: contains_any(ua, ("macintosh", "mac os x")) and "android" not in ua,
        platform=Platform.APPLE,
        method=DetectionMethod.HEURISTIC,
        confidence=0.75,
        source="macOS desktop (Apple ecosystem heuristic)",
    ),
    DetectionRule(
        name="windows_chrome",
        predicate=lambda ua: "windows" in ua and "chrome" in ua and "edge" not in ua,
        platform=Platform.GOOGLE,
        method=DetectionMethod.HEURISTIC,
        confidence=0.55,
        source="Windows + Chrome (Google ecosystem heuristic)",
    ),
    DetectionRule(
        name="safari",
        predicate=lambda ua: "safari" in ua and "chrome" not in ua and "android" not in ua,
        platform=Platform.APPLE,
        method=DetectionMethod.HEURISTIC,
        confidence=0.70,
        source="Safari browser (Apple ecosystem heuristic)",
    ),
    DetectionRule(
        name="non_android_mobile",
        predicate=lambda ua: "mobile" in ua and "android" not in ua,
        platform=Platform.APPLE,
        method=DetectionMethod.HEURISTIC,
        confidence=0.60,
        source="Mobile device (non-Android)",
    ),
    DetectionRule(
        name="bot",
        predicate=lambda ua: contains_any(ua, ("bot", "crawler", "spider", "curl", "wget", "postman")),
        platform=DEFAULT,
        method=DetectionMethod.DEFAULT,
        confidence=0.0,
        source="Bot/Crawler (default fallback)",
    ),
    DetectionRule(
        name="fallback",
        predicate=lambda ua: True,
        platform=DEFAULT,
        method=DetectionMethod.DEFAULT,
        confidence=0.50,
        source="Unknown signature (market-share fallback)",
    ),
)


class PlatformDetector:
    """
    Pure platform detection over an explicit hint and a client signature.

    Identical inputs always produce identical results; nothing is cached or
    persisted. ``UNKNOWN`` never leaves ``detect``: rules that cannot decide
    resolve to the configured default platform.
    """

    def __init__(
        self,
        default_platform: Optional[Platform] = None,
        rules: Tuple[DetectionRule, ...] = DETECTION_RULES
    ):
        self.default_platform = default_platform or Platform.parse(settings.default_platform)
        if self.default_platform == Platform.UNKNOWN:
            raise ValueError("Default platform must be apple or google")
        self.rules = rules

    def detect(
        self,
        explicit_hint: Optional[str] = None,
        client_signature: Optional[str] = None
    ) -> PlatformDetectionResult:
        """
        Detect the wallet platform for a request.

        Args:
            explicit_hint: Platform named by the client ("apple", "ios",
                "google", "android"); unparseable values are ignored
            client_signature: Raw client identification string

        Returns:
            PlatformDetectionResult with a concrete platform
        """
        if explicit_hint:
            parsed = Platform.parse(explicit_hint)
            if parsed != Platform.UNKNOWN:
                logger.debug(f"Platform explicitly specified by client: {parsed.value}")
                return PlatformDetectionResult(
                    platform=parsed,
                    method=DetectionMethod.EXPLICIT_PARAMETER,
                    confidence=1.0,
                    source=f"Explicit parameter: {explicit_hint}"
                )
            logger.warning(f"Invalid platform hint {explicit_hint!r}, falling back to signature analysis")

        if not client_signature:
            logger.debug("No client signature present, using default platform")
            return PlatformDetectionResult(
                platform=self.default_platform,
                method=DetectionMethod.DEFAULT,
                confidence=0.0,
                source="no signature present"
            )

        rule = self.match_rule(client_signature)
        return PlatformDetectionResult(
            platform=self._resolve(rule.platform),
            method=rule.method,
            confidence=rule.confidence,
            source=rule.source
        )

    def match_rule(self, client_signature: str) -> DetectionRule:
        """First rule in ladder order matching the signature."""
        signature = client_signature.lower()
        for rule in self.rules:
            if rule.matches(signature):
                return rule
        # Custom rule sets may omit the catch-all
        return DETECTION_RULES[-1]

    def describe_signature(self, client_signature: Optional[str]) -> ClientSignatureInfo:
        """Classify a signature for diagnostics. Not used for routing."""
        signature = client_signature or ""
        ua = signature.lower()
        return ClientSignatureInfo(
            detected_platform=self.detect(client_signature=signature).platform,
            signature=signature,
            is_desktop=contains_any(ua, ("windows", "macintosh", "linux", "x11")) and "mobile" not in ua,
            is_mobile=contains_any(ua, ("mobile", "android", "iphone", "ipad", "ipod")),
            is_bot=contains_any(ua, ("bot", "crawler", "spider", "curl", "wget")),
            browser_family=detect_browser(ua),
            os_family=detect_os(ua)
        )

    def _resolve(self, platform: Platform) -> Platform:
        return self.default_platform if platform == Platform.UNKNOWN else platform


def detect_browser(ua: str) -> str:
    if "edg" in ua:
        return "Edge"
    if "chrome" in ua:
        return "Chrome"
    if "safari" in ua:
        return "Safari"
    if "firefox" in ua:
        return "Firefox"
    return "Unknown"


def detect_os(ua: str) -> str:
    if "iphone" in ua:
        return "iOS (iPhone)"
    if "ipad" in ua:
        return "iOS (iPad)"
    if "android" in ua:
        return "Android"
    if "mac os x" in ua:
        return "macOS"
    if "windows" in ua:
        return "Windows"
    if "linux" in ua:
        return "Linux"
    return "Unknown"


def is_low_confidence(result: PlatformDetectionResult, threshold: Optional[float] = None) -> bool:
    """True when a non-explicit detection falls below the confidence threshold."""
    if threshold is None:
        threshold = settings.low_confidence_threshold
    return result.method != DetectionMethod.EXPLICIT_PARAMETER and result.confidence < threshold
