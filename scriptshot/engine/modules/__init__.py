"""
Script context modules: log, img, files, share.
"""

from scriptshot.engine.modules.files import make_files_module
from scriptshot.engine.modules.img import make_img_module
from scriptshot.engine.modules.log import make_log_module
from scriptshot.engine.modules.share import make_share_module

__all__ = [
    "make_files_module",
    "make_img_module",
    "make_log_module",
    "make_share_module",
]
