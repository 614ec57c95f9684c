"""Scanners for individual file formats, each with its scan function and FILE_HEADER."""