import os
from setuptools import setup

def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()

setup(
    name = 'readmark',
    version = '0.1',
    description = 'Renders markdown containing Latex math (from OCR or chat models) into safe HTML, using Python Markdown.',
    long_description = read('README.md'),
    long_description_content_type = 'text/markdown',
    license = 'MIT',
    keywords = 'markdown latex math mathml',
    python_requires = '>=3.10',
    install_requires=[
        'markdown', 'pymdown-extensions', 'latex2mathml', 'lxml'
    ],
    extras_require = {
        'test': ['pytest', 'pyhamcrest', 'cssselect'],
    },
    packages = [
        'readmark', 'readmark.lib', 'readmark.ext'
    ],
    entry_points = {
        'markdown.extensions': [
            'readmark.math_guard = readmark.ext.math_guard:MathGuardExtension',
            'readmark.classes = readmark.ext.classes:ClassesExtension',
        ]
    },
    classifiers = [
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Text Processing :: Markup :: Markdown',
        'Topic :: Text Processing :: Markup :: HTML',
    ]
)
