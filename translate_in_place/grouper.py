"""
Text Block Grouping Module

Clusters recognized text lines into paragraph-like groups that are
translated and rendered as one unit.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import NoTextDetected, NoTranslatableText
from .language import LanguageIdentifier, base_language_code
from .models import BoundingBox, Language, TextGroup, TextObservation

logger = logging.getLogger(__name__)

IdentifyFn = Callable[[str, Optional[str]], Optional[str]]


class TextBlockGrouper:
    """
    Groups consecutive lines that sit close together vertically.

    This is a single greedy pass over the lines sorted top to bottom. It
    does not look at columns or horizontal alignment, which suits signs,
    labels and captions rather than multi-column documents.
    """

    def __init__(
        self,
        identify_language: IdentifyFn = None,
        gap_ratio: float = 0.5
    ):
        """
        Args:
            identify_language: Callable (text, hint) -> language code or None
            gap_ratio: A line joins the open group when its gap to the
                previous line is below ``gap_ratio`` times that line's height
        """
        self.identify_language = identify_language or LanguageIdentifier()
        self.gap_ratio = gap_ratio

    def filter_translatable(
        self,
        observations: Sequence[TextObservation],
        target_language: Language
    ) -> List[TextObservation]:
        """Drop lines that are already in the target language."""
        target_base = target_language.base_code
        kept = []
        for observation in observations:
            identified = self.identify_language(
                observation.text, observation.detected_language
            )
            source_base = base_language_code(identified)
            if source_base is None:
                logger.debug(f"Dropping unidentifiable line: '{observation.text}'")
                continue
            if source_base == target_base:
                logger.debug(f"Dropping line already in '{target_base}': '{observation.text}'")
                continue
            kept.append(observation)
        return kept

    def cluster(self, observations: Sequence[TextObservation]) -> List[List[TextObservation]]:
        """Sort lines top to bottom and merge vertically adjacent ones."""
        # Normalized Y grows upward, so the highest bottom edge comes first
        ordered = sorted(observations, key=lambda o: o.bounding_box.min_y, reverse=True)

        clusters: List[List[TextObservation]] = []
        current: List[TextObservation] = []
        for observation in ordered:
            if not current:
                current.append(observation)
                continue

            previous = current[-1].bounding_box
            gap = previous.min_y - observation.bounding_box.max_y
            if gap < previous.height * self.gap_ratio:
                current.append(observation)
            else:
                clusters.append(current)
                current = [observation]

        if current:
            clusters.append(current)
        return clusters

    @staticmethod
    def to_pixel_box(
        observation: TextObservation,
        image_size: Tuple[int, int]
    ) -> BoundingBox:
        """Convert a normalized bottom-left box to top-left pixel coordinates."""
        width, height = image_size
        box = observation.bounding_box
        x1 = box.min_x * width
        x2 = box.max_x * width
        y1 = height - box.max_y * height
        y2 = height - box.min_y * height
        return BoundingBox(x1, y1, x2, y2)

    def materialize(
        self,
        cluster: Sequence[TextObservation],
        image_size: Tuple[int, int]
    ) -> TextGroup:
        combined_text = "\n".join(o.text for o in cluster)
        combined_box = None
        for observation in cluster:
            box = self.to_pixel_box(observation, image_size)
            combined_box = box if combined_box is None else combined_box.union(box)
        return TextGroup(combined_text=combined_text, pixel_bounding_box=combined_box)

    def group(
        self,
        observations: Sequence[TextObservation],
        target_language: Language,
        image_size: Tuple[int, int]
    ) -> List[TextGroup]:
        """
        Build text groups for translation.

        Args:
            observations: Lines recognized by OCR
            target_language: Language the user wants to read
            image_size: (width, height) of the source image in pixels

        Returns:
            Text groups in top-to-bottom order

        Raises:
            NoTextDetected: if there are no observations at all
            NoTranslatableText: if every line is already in the target language
        """
        if not observations:
            raise NoTextDetected()

        translatable = self.filter_translatable(observations, target_language)
        if not translatable:
            raise NoTranslatableText()

        groups = [
            self.materialize(cluster, image_size)
            for cluster in self.cluster(translatable)
        ]
        logger.info(
            f"Grouped {len(translatable)}/{len(observations)} lines "
            f"into {len(groups)} text groups"
        )
        return groups
