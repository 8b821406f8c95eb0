import os
import sys

import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from io_utils import (
    downscale_for_preview, list_images, load_image, make_output_path, preview_size, save_png,
)


class TestPaths:
    def test_output_name(self):
        assert make_output_path("out", "/x/photo.jpeg", "glass_dots") == os.path.join("out", "photo_glass_dots.png")

    def test_list_images_filters_and_sorts(self, tmp_path):
        for n in ("b.PNG", "a.jpg", "c.txt"):
            (tmp_path / n).write_bytes(b"")
        (tmp_path / "sub.png").mkdir()
        assert [os.path.basename(p) for p in list_images(str(tmp_path))] == ["a.jpg", "b.PNG"]

    def test_list_single_file(self, tmp_path):
        f = tmp_path / "one.png"
        f.write_bytes(b"")
        assert list_images(str(f)) == [str(f)]


class TestSaveLoad:
    def test_save_creates_folder(self, tmp_path):
        dst = tmp_path / "deep" / "x.png"
        save_png(Image.new("RGBA", (4, 4)), str(dst))
        assert load_image(str(dst)).size == (4, 4)

    def test_no_overwrite(self, tmp_path):
        dst = tmp_path / "x.png"
        save_png(Image.new("RGB", (2, 2)), str(dst))
        with pytest.raises(FileExistsError):
            save_png(Image.new("RGB", (2, 2)), str(dst), overwrite=False)


class TestPreview:
    def test_preview_size_caps_long_side(self):
        assert preview_size((3840, 2160)) == (1500, 843)
        assert preview_size((1260, 2800), max_dim=700) == (315, 700)

    def test_small_sizes_untouched(self):
        assert preview_size((640, 480)) == (640, 480)

    def test_downscale_returns_same_object_when_small(self, gradient_image):
        assert downscale_for_preview(gradient_image) is gradient_image
        assert downscale_for_preview(gradient_image, max_dim=60).size == (60, 40)
