from setuptools import setup, find_packages


setup(
    name="fontdoc",
    use_scm_version={
        "write_to": "src/fontdoc/_version.py",
        "fallback_version": "0.1.0",
    },
    description="An undoable font document model for UFO sources",
    # long_description=long_description,
    # long_description_content_type="text/markdown",
    entry_points={
        "console_scripts": ["fontdoc=fontdoc.__main__:main"],
    },
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "cattrs>=23.1",
        "fonttools[ufo,lxml]>=4.40.0",
    ],
    setup_requires=["setuptools_scm"],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Graphics",
    ],
)
