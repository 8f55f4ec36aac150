import mimetypes
from pathlib import Path

mimetypes.init()

# Types that `mimetypes` gets wrong or doesn't know about
MIME_TYPES: dict[str, str] = dict(
	bz2="application/x-bzip",
	gz="application/x-gzip",
	js="text/javascript",
	mjs="text/javascript",
	wasm="application/wasm",
)

# How many bytes are sniffed to tell text files from binary ones
SNIFF_SIZE: int = 512


def isText(path: Path | str, size: int = SNIFF_SIZE) -> bool:
	"""Check if a file is likely a text file by examining its content."""
	try:
		with open(path, "rb") as f:
			s = f.read(size)
	except OSError:
		return False
	if b"\x00" in s:
		return False
	try:
		s.decode("utf-8")
		return True
	except UnicodeDecodeError:
		# The sniffed chunk may end in the middle of a multi-byte sequence
		return len(s) == size and _isTruncatedUTF8(s)


def _isTruncatedUTF8(data: bytes) -> bool:
	for i in range(1, 4):
		try:
			data[:-i].decode("utf-8")
			return True
		except UnicodeDecodeError:
			continue
	return False


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path, falling back to sniffing
	the contents. Text types are always given an explicit UTF-8 charset."""
	name = str(path)
	res: str | None = MIME_TYPES.get(Path(name).suffix[1:].lower())
	if res is None:
		res = mimetypes.guess_type(name)[0]
	if res is None:
		res = "text/plain" if isText(path) else "application/octet-stream"
	if res.startswith("text/") and "charset" not in res:
		res = f"{res}; charset=utf-8"
	return res


# EOF
