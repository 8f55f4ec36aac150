import os
import sys

from setuptools import find_packages, setup

VERSION = "0.1.0"
# Try to import mypyc, make it optional
try:
	from mypyc.build import mypycify

	MYPYC_AVAILABLE = True
except ImportError:
	MYPYC_AVAILABLE = False


def readme():
	with open("README.md", "r", encoding="utf-8") as fh:
		return fh.read()


def list_ext_modules(base_path="src/py/servefile"):
	python_files = []
	for root, _, files in os.walk(base_path):
		for file in files:
			# The entry point is run as a script, so it stays interpreted
			if file.endswith(".py") and file != "__main__.py":
				python_files.append(os.path.join(root, file))
	return python_files


# Compilation is opt-in with `--use-mypyc`
USE_MYPYC = MYPYC_AVAILABLE and "--use-mypyc" in sys.argv and "sdist" not in sys.argv

# Remove our custom flag from sys.argv to avoid confusing setuptools
if "--use-mypyc" in sys.argv:
	sys.argv.remove("--use-mypyc")

ext_modules = mypycify(list_ext_modules()) if USE_MYPYC else []

setup(
	name="servefile",
	version=VERSION,
	description="Composable static file handlers for HTTP and HTTPS, with prefix mounting, index hiding and request logging",
	long_description=readme(),
	long_description_content_type="text/markdown",
	packages=find_packages(where="src/py"),
	package_dir={"": "src/py"},
	classifiers=[
		"Development Status :: 4 - Beta",
		"Intended Audience :: Developers",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Programming Language :: Python :: 3",
		"Programming Language :: Python :: 3.11",
		"Programming Language :: Python :: 3.12",
		"Topic :: Internet :: WWW/HTTP :: HTTP Servers",
	],
	python_requires=">=3.11",
	install_requires=[
		"mypy-extensions",
	],
	extras_require={
		"dev": [
			"mypy",
			"flake8",
			"bandit",
		],
		"test": [
			"pytest",
		],
	},
	entry_points={
		"console_scripts": [
			"servefile=servefile.__main__:main",
		],
	},
	include_package_data=True,
	zip_safe=False,
	ext_modules=ext_modules,
)
