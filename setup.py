"""Package setup for SEO MCP."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [
        line.strip()
        for line in fh
        if line.strip() and not line.startswith("#")
    ]

# Separate test dependencies
test_requirements = [
    "pytest>=8.0.0,<9.0",
    "pytest-asyncio>=0.23.0,<1.0",
    "pytest-cov>=4.1.0,<6.0",
]

setup(
    name="seo-mcp",
    version="1.0.0",
    author="SEO MCP Team",
    author_email="seo-mcp@example.com",
    description=(
        "An MCP tool server for SEO analysis: on-page audits, heading outlines, "
        "robots.txt, sitemaps, Core Web Vitals and Search Console data."
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/seo-mcp/seo-mcp",
    project_urls={
        "Bug Tracker": "https://github.com/seo-mcp/seo-mcp/issues",
        "Source Code": "https://github.com/seo-mcp/seo-mcp",
    },
    packages=find_packages(exclude=["tests", "tests.*", "docs", "scripts"]),
    python_requires=">=3.10",
    install_requires=[r for r in requirements if "pytest" not in r],
    extras_require={
        "test": test_requirements,
        "dev": test_requirements + [
            "black",
            "flake8",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "seo-mcp=seo_mcp.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["*.yaml", "*.yml"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Framework :: Pytest",
        "Typing :: Typed",
    ],
    keywords=[
        "seo", "mcp", "model-context-protocol", "technical-audit",
        "headings", "robots-txt", "sitemap", "core-web-vitals", "search-console",
    ],
)
