"""
Question Paper Composition Pipeline
papers/

Steps:
1. Content Normalizer:  raw question row → ComposedQuestion (parsed table, content flags, table HTML)
2. Hierarchy Assembler: batch-fetch sub-questions, natural-order them under their parents
3. Paper Composer:      validate + persist papers as one unit of work, resolve entries, total marks
4. Paper Exporter:      resolved paper → paginated PDF with a closing total line
5. Statistics:          per-student assessment records → completion and score summary
"""
