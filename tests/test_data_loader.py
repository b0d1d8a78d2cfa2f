import os
import tempfile
import unittest

import torch
from torchvision.io import write_png

from data_loader import DepthViewDataset, depth_dataloader, load_depth_images, load_extra_data, resize_images
from errors import InvalidArgument


def save_gray(path, value, size=8):
    write_png(torch.full((1, size, size), value, dtype=torch.uint8), path)


class TestResizeImages(unittest.TestCase):
    def test_four_dimensional(self):
        images = torch.rand(3, 5, 16, 16)
        resized = resize_images(images, 8, 5)
        self.assertEqual(resized.shape, (3, 5, 8, 8))
        self.assertEqual(resized.dtype, images.dtype)

    def test_flattened(self):
        images = torch.ones(2, 4 * 16 * 16)
        resized = resize_images(images, 8, 4)
        self.assertEqual(resized.shape, (2, 4 * 8 * 8))
        self.assertTrue(torch.allclose(resized, torch.ones_like(resized)))

    def test_with_colour_channels(self):
        resized = resize_images(torch.rand(2, 4, 3, 16, 16), 32, 4)
        self.assertEqual(resized.shape, (2, 4, 3, 32, 32))

    def test_rejects_other_ranks(self):
        with self.assertRaises(InvalidArgument):
            resize_images(torch.rand(2, 16, 16), 8, 1)


class TestLoadImages(unittest.TestCase):
    def test_load_depth_images(self):
        with tempfile.TemporaryDirectory() as tmp:
            for i in range(3):
                save_gray(os.path.join(tmp, f"model_depth_{i}.png"), 255 if i == 1 else 0)
            save_gray(os.path.join(tmp, "model_mask_0.png"), 255)
            depth = load_depth_images(tmp, "depth", num_vps=3, img_size=8)
            self.assertEqual(depth.shape, (1, 3, 8, 8))
            self.assertTrue(torch.all(depth[0, 1] == 1))
            self.assertTrue(torch.all(depth[0, 0] == 0))

    def test_completion(self):
        with tempfile.TemporaryDirectory() as tmp:
            for i in range(4):
                save_gray(os.path.join(tmp, f"vp{i}.png"), 10 * i)
            depth = load_extra_data(tmp, "completion", num_vps=2)
            self.assertEqual(depth.shape, (2, 2, 8, 8))

    def test_nyud_triplets_are_cropped_and_scaled(self):
        with tempfile.TemporaryDirectory() as tmp:
            save_gray(os.path.join(tmp, "1_depth.png"), 255, size=240)
            save_gray(os.path.join(tmp, "2_sil.png"), 0, size=240)
            write_png(torch.full((3, 240, 240), 128, dtype=torch.uint8), os.path.join(tmp, "3_rgb.png"))
            depth, silhouettes, rgb = load_extra_data(tmp, "nyud")
            self.assertEqual(depth.shape, (1, 1, 224, 224))
            self.assertEqual(silhouettes.shape, (1, 1, 224, 224))
            self.assertEqual(rgb.shape, (1, 3, 224, 224))
            self.assertTrue(torch.all(depth == 1))
            self.assertTrue(torch.all(silhouettes == 0))
            self.assertTrue(torch.allclose(rgb, torch.full_like(rgb, 128 / 255)))
            for tensor in (depth, silhouettes, rgb):
                self.assertGreaterEqual(float(tensor.min()), 0)
                self.assertLessEqual(float(tensor.max()), 1)

    def test_silhouettes_are_inverted(self):
        with tempfile.TemporaryDirectory() as tmp:
            save_gray(os.path.join(tmp, "a.png"), 0)
            save_gray(os.path.join(tmp, "b.png"), 255)
            silhouettes = load_extra_data(tmp, "silhouettes")
            self.assertEqual(silhouettes.shape, (2, 1, 8, 8))
            self.assertTrue(torch.all(silhouettes[0] == 1))
            self.assertTrue(torch.all(silhouettes[1] == 0))

    def test_unknown_forward_type(self):
        with tempfile.TemporaryDirectory() as tmp:
            save_gray(os.path.join(tmp, "a.png"), 0)
            with self.assertRaises(InvalidArgument):
                load_extra_data(tmp, "voxels")


class TestDepthViewDataset(unittest.TestCase):
    def test_loads_and_splits(self):
        with tempfile.TemporaryDirectory() as tmp:
            for i in range(5):
                torch.save(torch.full((3, 4, 4), float(i)), os.path.join(tmp, f"{i}.pt"))
            dataset = DepthViewDataset([os.path.join(tmp, "0.pt")], num_vps=3)
            self.assertEqual(dataset[0].shape, (3, 4, 4))
            train_loader, test_loader = depth_dataloader(tmp, batch_size=2, num_vps=3)
            self.assertEqual(len(train_loader.dataset), 4)
            self.assertEqual(len(test_loader.dataset), 1)
            batch = next(iter(train_loader))
            self.assertEqual(batch.shape, (2, 3, 4, 4))
