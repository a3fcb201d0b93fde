""" Derive container image versions and tags from Git and patch OAM application manifests. """

__version__ = "0.1.0"
