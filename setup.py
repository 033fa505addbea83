from setuptools import setup, find_packages

def readme():
    with open('README.md') as f:
        return f.read()

setup(
    name='deliverymdp',
    version='0.1',
    description='Reactive planning for stochastic pickup-and-delivery',
    long_description=readme(),
    long_description_content_type='text/markdown',
    keywords = [
        'markov decision process',
        'planning',
        'value iteration',
        'logistics'
    ],
    license='MIT',
    packages=find_packages(include=['deliverymdp', 'deliverymdp.*']),
    install_requires=[
        'numpy',
        'scipy',
        'pandas',
        'frozendict',
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False,
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
)
