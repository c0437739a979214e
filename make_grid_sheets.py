#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Assemble a folder of images into numbered grid sheets.
"""

# local repo modules
import photo_grid_batcher.cli


if __name__ == "__main__":
	photo_grid_batcher.cli.main()
