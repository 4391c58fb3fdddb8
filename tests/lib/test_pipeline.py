from ..util.hamcrest_elements import *
from ..util.mock_engine import BrokenEngineFactory, MockEngine
from ..util.mock_progress import MockProgress
from readmark.lib import pipeline
from readmark.lib.config import ProcessorConfig
from readmark.lib.error import ScanError, TransformError
from readmark.lib.math_renderer import Latex2MathMLEngine
from readmark.lib.placeholders import PLACEHOLDER_RE, TOKEN_CLOSE, TOKEN_OPEN
from readmark.lib.post_processor import post_process
from readmark.lib.segments import ProcessingResult, Stats
from readmark.lib.transform import MarkdownTransform

import unittest
from unittest.mock import patch
from hamcrest import *

import asyncio
from concurrent.futures import ThreadPoolExecutor
import random
from textwrap import dedent


class PipelineTestCase(unittest.TestCase):

    def make_pipeline(self, engine_factory = MockEngine, expect_error = False, **config_args):
        self.progress = MockProgress(expect_error = expect_error)
        self.config = ProcessorConfig(engine_factory = engine_factory,
                                      progress = self.progress,
                                      **config_args)
        return pipeline.Pipeline(self.config)


    def process(self, text, **kwargs):
        return self.make_pipeline(**kwargs).process(text)


    def test_scenario(self):
        result = self.process(
            '# Title\n\nInline $x^2$ and display:\n\n$$\\int_0^1 f(x)dx$$\n\n'
            '- item one\n- item **two**',
            engine_factory = Latex2MathMLEngine)

        self.assertTrue(result.succeeded)
        self.assertIsNone(result.error_message)
        assert_that(result.stats, has_properties(inline_math_count = 1,
                                                 display_math_count = 1,
                                                 code_block_count = 0,
                                                 table_count = 0))

        root = fragment(result.markup)
        assert_that([h.text_content() for h in root.cssselect('h1')], contains_exactly('Title'))

        inline = root.cssselect('p > span.math-inline')
        assert_that(inline, has_length(1))
        assert_that(inline[0].cssselect('msup'), has_length(1))

        display = root.cssselect('span.math-display')
        assert_that(display, has_length(1))
        assert_that(display[0].cssselect('math'), has_length(1))

        items = root.cssselect('ul > li')
        assert_that([li.text_content() for li in items], contains_exactly('item one', 'item two'))
        assert_that([s.text for s in items[1].cssselect('strong')], contains_exactly('two'))


    def test_empty(self):
        for text in ['', None]:
            result = self.process(text)
            self.assertEqual(ProcessingResult('', Stats(), True, None), result)


    def test_currency(self):
        result = self.process('Cost is $5 total')
        self.assertEqual('<p>Cost is $5 total</p>', result.markup)
        assert_that(result.stats, has_properties(inline_math_count = 0, display_math_count = 0))


    def test_escaping(self):
        result = self.process(r'Price: \$5 and $x+1$')
        self.assertEqual(
            '<p>Price: $5 and <span class="math-inline"><math>x+1-inline</math></span></p>',
            result.markup)
        self.assertEqual(1, result.stats.inline_math_count)


    def test_display_priority(self):
        result = self.process('$$a+b$$')
        self.assertEqual('<p><span class="math-display"><math>a+b-block</math></span></p>',
                         result.markup)
        assert_that(result.stats, has_properties(inline_math_count = 0, display_math_count = 1))


    def test_no_placeholders_in_output(self):
        for text in [
            '$x+1$ $$y$$ `$z$` $w_1$',
            '| $a+1$ | $$b$$ |\n|---|---|\n| *$c_1$* | [$d$](url) |',
            '    indented $x+1$ code',
            '> quoted $x+1$\n>\n> $$\\sum$$',
            f'forged {TOKEN_OPEN}rm-math:0{TOKEN_CLOSE} and $x+1$',
        ]:
            markup = self.process(text).markup
            assert_that(markup, not_(contains_string(TOKEN_OPEN)), text)
            assert_that(markup, not_(contains_string(TOKEN_CLOSE)), text)
            self.assertIsNone(PLACEHOLDER_RE.search(markup), text)


    def test_math_free_round_trip(self):
        text = dedent(
            '''
            # Heading

            Some *text* with `code` and a [link](https://example.com).

            | A | B |
            |---|---|
            | 1 | 2 |

            ```python
            print("x")
            ```

            1. one
            2. two
            ''').strip()

        result = self.process(text)
        self.assertEqual(post_process(MarkdownTransform(self.config).convert(text),
                                      self.config.table_wrapper_class),
                         result.markup)
        assert_that(result.markup, contains_string('<div class="table-wrapper"><table>'))


    def test_isolation(self):
        result = self.process(r'Good $x^2$ and bad $\frac{1}{2$ end.',
                              engine_factory = Latex2MathMLEngine)

        self.assertTrue(result.succeeded)
        root = fragment(result.markup)
        good = root.cssselect('span.math-inline')
        assert_that(good, has_length(1))
        assert_that(good[0].cssselect('msup'), has_length(1))

        bad = root.cssselect('span.math-error-inline')
        assert_that(bad, has_length(1))
        self.assertEqual(r'$\frac{1}{2$', bad[0].text)
        self.assertEqual('true', bad[0].get('data-math-error'))
        assert_that(result.markup, contains_string('end.'))
        assert_that(self.progress.warning_messages, has_length(1))


    def test_engine_unavailable(self):
        result = self.process('Sum $a+b$ and\n\n$$c$$', engine_factory = BrokenEngineFactory(),
                              expect_error = True)

        # The math is degraded, but the document as a whole is not.
        self.assertTrue(result.succeeded)
        root = fragment(result.markup)
        assert_that(root.cssselect('span.math-fallback-inline'), has_length(1))
        assert_that(root.cssselect('span.math-fallback-display'), has_length(1))
        assert_that(result.markup, not_(contains_string('math-error')))
        assert_that(self.progress.error_messages, has_length(1))


    def test_scan_failure(self):
        p = self.make_pipeline()
        with patch.object(p.scanner, 'scan', side_effect = ScanError('confused')):
            result = p.process('a $x+1$')

        self.assertTrue(result.succeeded)
        self.assertEqual('<p>a $x+1$</p>', result.markup)
        assert_that(self.progress.warning_messages, has_length(1))


    def test_transform_failure(self):
        p = self.make_pipeline(expect_error = True)
        with patch.object(p.transform, 'convert',
                          side_effect = TransformError('markdown broke', stage = 'transform')):
            result = p.process('# a < b\n$x+1$')

        self.assertFalse(result.succeeded)
        self.assertEqual('# a &lt; b<br>$x+1$', result.markup)
        assert_that(result.error_message, all_of(starts_with('rendering stage failed'),
                                                 contains_string('markdown broke')))
        assert_that(self.progress.error_messages, has_length(1))


    def test_post_processing_failure(self):
        p = self.make_pipeline(expect_error = True)
        with patch.object(pipeline, 'post_process', side_effect = RuntimeError('oops')):
            result = p.process('text\n\n& more')

        self.assertFalse(result.succeeded)
        self.assertEqual('text<br><br>&amp; more', result.markup)
        assert_that(result.error_message, starts_with('post-processing stage failed'))


    def test_fatal_fallback(self):
        p = self.make_pipeline(expect_error = True)
        with patch.object(pipeline, 'post_process', side_effect = RuntimeError('oops')), \
             patch.object(pipeline, 'fallback_markup', side_effect = RuntimeError('worse')):
            result = p.process('text')

        self.assertFalse(result.succeeded)
        self.assertEqual('', result.markup)
        assert_that(result.error_message, contains_string('Could not produce fallback markup'))
        assert_that(self.progress.error_messages, has_length(2))


    def test_never_throws(self):
        rand = random.Random(1234)
        alphabet = list('$$$`*_~[](){}<>#|\\-:!&\n\n  abxy12') + \
                   ['\x00', '\ufffd', '\ufdd0', '\ufdd1', 'rm-math:', '```', '$$', '\\$']
        corpus = [
            '$' * 17,
            '`' * 9 + '$x+1$',
            '```\n$x+1$\n',
            '[' * 200 + '$x+1$' + ']' * 200,
            '(' * 100 + '{' * 100,
            '> ' * 50 + '$$y$$',
            bytes(range(256)),
        ]
        corpus += [''.join(rand.choice(alphabet) for _ in range(rand.randint(1, 120)))
                   for _ in range(200)]

        p = self.make_pipeline()
        for text in corpus:
            result = p.process(text)
            assert_that(result, instance_of(ProcessingResult), repr(text))
            self.assertTrue(result.succeeded, repr(text))
            assert_that(result.markup, not_(contains_string(TOKEN_OPEN)), repr(text))


    def test_stats(self):
        result = self.process(dedent(
            '''
            ```
            $$not math$$
            ```

            | a | b |
            |---|---|
            | 1 | 2 |

            ~~~
            more code
            ~~~

            | c | d |
            |---|---|
            | 3 | 4 |

            Use `$x+1$` here.
            '''))

        assert_that(result.stats, has_properties(inline_math_count = 0,
                                                 display_math_count = 0,
                                                 code_block_count = 2,
                                                 table_count = 2))
        self.assertGreaterEqual(result.stats.processing_time_ms, 0)
        assert_that(result.markup, all_of(contains_string('$$not math$$'),
                                          contains_string('<code>$x+1$</code>')))


    def test_code_not_rendered(self):
        p = self.make_pipeline()
        p.process('Use `$x+1$` and\n\n```\n$$y+1$$\n```\n')
        # The engine is created lazily, and here there's nothing to create it for.
        self.assertFalse(p.engine.initialised)


    def test_element_classes(self):
        root = fragment(self.process('# A\n\n- [x] done',
                                     element_classes = {'h1': 'title', 'li': 'item'}).markup)
        assert_that(root.cssselect('h1')[0], has_css_class('title'))
        li = root.cssselect('li')[0]
        assert_that(li, all_of(has_css_class('item'), has_css_class('task-list-item')))


    def test_bytes(self):
        self.assertEqual('<h1>A £</h1>', self.process('# A £'.encode('utf-8')).markup)


    def test_concurrent_calls(self):
        p = self.make_pipeline()
        texts = [f'# Doc {i}\n\nValue $x_{i}$ and $$y^{i}$$' for i in range(20)]

        with ThreadPoolExecutor(max_workers = 8) as executor:
            results = list(executor.map(p.process, texts))

        for i, result in enumerate(results):
            self.assertTrue(result.succeeded)
            assert_that(result.markup, all_of(contains_string(f'<h1>Doc {i}</h1>'),
                                              contains_string(f'x_{i}-inline'),
                                              contains_string(f'y^{i}-block')))


    def test_async(self):
        p = self.make_pipeline()
        result = asyncio.run(p.process_async('$x+1$'))
        self.assertEqual('<p><span class="math-inline"><math>x+1-inline</math></span></p>',
                         result.markup)


    def test_process_fast(self):
        self.assertEqual('<h2>B</h2>', self.make_pipeline().process_fast('## B'))


    def test_validate_syntax(self):
        self.assertEqual((True, []), astuple(pipeline.validate_syntax('a $x$ and $$y$$')))
        self.assertEqual((True, []), astuple(pipeline.validate_syntax(None)))
        self.assertEqual((False, ['Unmatched math delimiters ($)']),
                         astuple(pipeline.validate_syntax('Cost $5')))
        self.assertEqual((False, ['Invalid math delimiter pattern ($$$$)']),
                         astuple(pipeline.validate_syntax('a $$$$ b')))
        self.assertEqual((False, ['Unclosed code block (```)']),
                         astuple(pipeline.validate_syntax('```\ncode')))
        self.assertEqual((False, ['Unmatched math delimiters ($)', 'Unclosed code block (```)']),
                         astuple(pipeline.validate_syntax('$ ```')))


    def test_feature_support(self):
        features = pipeline.feature_support()
        assert_that(features, has_entries(math = True, tables = True, task_lists = True,
                                          code_highlighting = False))


    def test_math_in_attributes(self):
        result = self.process('![area $x^2$](img.png) and [go](http://e.com/$a+b$) then $y_1$')

        root = fragment(result.markup)
        img = root.cssselect('img')[0]
        link = root.cssselect('a')[0]
        self.assertEqual('area $x^2$', img.get('alt'))
        self.assertEqual('img.png', img.get('src'))
        self.assertEqual('http://e.com/$a+b$', link.get('href'))
        self.assertEqual('go', link.text)

        # Math in ordinary text is still rendered.
        assert_that(root.cssselect('span.math-inline'), has_length(1))
        assert_that(result.markup, contains_string('y_1-inline'))


    def test_indented_code_not_rendered(self):
        p = self.make_pipeline()
        result = p.process('Para\n\n    code $x+1$ here\n')

        code = fragment(result.markup).cssselect('pre code')
        assert_that(code, has_length(1))
        self.assertEqual('code $x+1$ here', code[0].text_content().strip())
        assert_that(result.markup, not_(contains_string('math-inline')))
        self.assertEqual(0, result.stats.inline_math_count)
        self.assertFalse(p.engine.initialised)


    def test_macros(self):
        self.assertEqual(
            r'<p>Let <span class="math-inline"><math>x \in \mathbb{R}^n-inline</math></span></p>',
            self.process(r'Let $x \in \R^n$').markup)

        self.assertEqual(
            r'<p>Let <span class="math-inline"><math>\R-inline</math></span></p>',
            self.process(r'Let $\R$', macros = {}).markup)



def astuple(report):
    return (report.is_valid, report.errors)
