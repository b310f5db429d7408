from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.classifier import Classifier, DisabledClassifier
from taxbinder.classification.factory import ClassifierFactory

__all__ = ["BaseClassifier", "Classifier", "ClassifierFactory", "DisabledClassifier"]
