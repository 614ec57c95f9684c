# carvekit

carvekit helps recover files of known formats from raw byte streams, such as disk images, memory dumps or damaged partitions. Each supported format has a scanner. You give a scanner a reader positioned where a candidate file starts. The scanner parses enough of the file's structure to decide whether the data is a real file of that format, and if it is, how many bytes the file takes up.

## Supported formats

| Module | Extension | Format |
|--------|-----------|--------|
| `carvekit.formats.mp3` | mp3 | MPEG Audio Layer III |
| `carvekit.formats.wav` | wav | Waveform Audio File Format |
| `carvekit.formats.au` | au | Sun audio |
| `carvekit.formats.wma` | wma | Windows Media Audio (ASF) |
| `carvekit.formats.jpeg` | jpeg | JPEG image |
| `carvekit.formats.png` | png | Portable Network Graphics |
| `carvekit.formats.bmp` | bmp | Bitmap image |
| `carvekit.formats.gif` | gif | Graphics Interchange Format |
| `carvekit.formats.pcx` | pcx | Picture Exchange |
| `carvekit.formats.tiff` | tif | Tagged Image File Format |
| `carvekit.formats.rar` | rar | RAR 1.5 and 5.0 archives |
| `carvekit.formats.pdf` | pdf | Portable Document Format |
| `carvekit.formats.sqlite` | sqlite | SQLite 3 database |

Each of these modules exposes two things:

- A scan function, such as `scan_jpeg` or `scan_pdf`.
- A `FILE_HEADER`, which is a `carvekit.core.FileHeader`. It holds the format's `ext`, `description` and `signatures`, and its `scan(reader)` method calls the scan function.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the test suite:

```
pip install .[test]
pytest
```

## Scanning a single candidate

`carvekit.reader.Reader(stream, size, buffer_size)` wraps a seekable binary stream. It starts at the stream's current position and will not let a scanner consume more than `size` bytes from there.

A scan function returns a `carvekit.core.ScanResult`, which has `size`, `ext` and `name` fields. When the data is not a valid file of that format, the scan function raises `carvekit.core.FormatError`. Some scanners raise `EOFError` instead, when the structure runs past the end of the available data.

```python
import io

from carvekit.reader import Reader
from carvekit.formats.pdf import scan_pdf

data = b"%PDF-1.4\n...\n%%EOF\n"
result = scan_pdf(Reader(io.BytesIO(data), len(data), 4096))
print(result.size)  # bytes up to and including the last %%EOF
```

`carvekit.search.seek_at(reader, sig, limit)` moves a reader forward to the next occurrence of a byte signature. The PDF scanner uses it to find its end markers, and you can use it in your own code too.

## Checking candidates across an image

The package does not walk a whole image for you. You match signatures and call the scanners yourself, for example once at every block boundary:

```python
import io

from carvekit.core import FormatError
from carvekit.reader import Reader
from carvekit.formats import jpeg, png, gif

headers = [jpeg.FILE_HEADER, png.FILE_HEADER, gif.FILE_HEADER]

with open("disk.img", "rb") as image:
    data = image.read()

stream = io.BytesIO(data)
for offset in range(0, len(data), 512):
    for header in headers:
        if not any(data.startswith(sig, offset) for sig in header.signatures):
            continue
        stream.seek(offset)
        try:
            result = header.scan(Reader(stream, len(data) - offset, 4096))
        except (FormatError, EOFError):
            continue
        print(offset, result.ext or header.ext, result.size)
```

## What the package does not do

carvekit is a library of format scanners, and it stops there:

- It has no command-line tool.
- It has no built-in driver that scans an image block by block, skips over files it has already found, and names the files it recovers.
- It has no registry that looks up scanners by signature or by extension.
- It does not write recovered files to disk.
- It does not recognise ZIP archives or the Office documents stored in them.