from .renderer import ReprRenderer  # noqa
