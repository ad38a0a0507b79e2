"""
PDF Stitcher: assemble pages from several PDFs, annotate them and export
one merged document with the ink burned in.
"""
__version__ = "0.2.0"
