from .rewardful import RewardfulImporter, rewardful_importer

__all__ = ["RewardfulImporter", "rewardful_importer"]
