"""FlexFEC coverage, repair packet encoders and the FEC interceptor."""