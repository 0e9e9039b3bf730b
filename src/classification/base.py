"""
Classifier interface.

A classifier turns a frame of the bin into a material label. Implementations
absorb their own failures and report them as ClassificationLabel.UNKNOWN.
"""

from __future__ import annotations

from typing import Protocol

from models.classification import ClassificationLabel
from models.frame import Frame


CLASSIFICATION_PROMPT = (
    "Classify the object inside the white box (bin) in this image as 'plastic', 'organic', "
    "'metal', or 'null' (if no object is present inside the box). If there is any hand or "
    "human interaction inside the box, classify as 'null'. Ignore all objects and elements "
    "outside the white box—analyze only the object inside the box. Examples for each class: \n"
    "- 'plastic': plastic bottles, plastic bags, food containers, plastic wrappers, plastic cups, "
    "straws, plastic utensils, shampoo/soap/detergent bottles, plastic toys, pens, combs, "
    "toothbrushes, containers, lids, packaging films, CD/DVDs, disposable gloves, plastic chairs, "
    "crates, buckets, trays  \n"
    "- 'organic': fruits, vegetables, paper, food scraps, leaves, flowers, tea leaves, coffee "
    "grounds, fruit peels, bread, meat, fish, nuts, seeds, eggshells, grass, sawdust, wood chips, "
    "cotton, wool, hay, compostable items  \n"
    "- 'metal': tin cans, aluminum foil, metal utensils, bottle caps, screws, coins, cutlery, "
    "metal lids, keys, nails, bolts, metal tools, kitchenware, jewelry, coins, wires, metal pipes, "
    "cans, cookware, metallic decorations, watch parts  \n"
    "- 'null': the box is empty, contains only non-classifiable items, or has any hand/human "
    "interaction inside the box.  \n"
    "Respond only with the classification."
)


class ClassificationFailure(RuntimeError):
    """Raised inside a classifier when the remote call or its answer is unusable."""


class Classifier(Protocol):
    def classify(self, frame: Frame) -> ClassificationLabel:
        ...
