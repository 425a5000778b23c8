from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="topicwatch",
    version="0.1.0",
    author="Laurence Stephan",
    author_email="your.email@example.com",
    description="Anonymous email subscriptions to forum topics, as a Flask extension",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/topicwatch",
    packages=find_packages(include=["topicwatch", "topicwatch.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications :: Email",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Framework :: Flask",
    ],
    python_requires=">=3.8",
    install_requires=[
        "Flask>=3.0.0",
        "MarkupSafe>=2.1.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "resend": [
            "resend>=0.7.0",
        ],
        "ses": [
            "boto3>=1.26.0",
        ],
        "dev": [
            "pytest>=7.0",
            "pytest-flask>=1.2",
            "black>=22.0",
            "flake8>=5.0",
        ],
    },
    include_package_data=True,
    package_data={
        "topicwatch": [
            "modules/*/templates/*/*.html",
        ],
    },
    zip_safe=False,
)
